"""Active/inactive state machine shared by roles and users."""

from __future__ import annotations

from enum import StrEnum
from typing import Final

from identity_admin.domain.errors import ConflictingStateError


class ActivityState(StrEnum):
    """Soft-delete state persisted as the boolean `is_active` column."""

    ACTIVE = "active"
    INACTIVE = "inactive"

    @classmethod
    def from_flag(cls, is_active: bool) -> ActivityState:
        """Map persisted boolean flag to state."""

        return cls.ACTIVE if is_active else cls.INACTIVE

    @property
    def is_active(self) -> bool:
        return self is ActivityState.ACTIVE


class InvalidActivityTransitionError(ConflictingStateError):
    """Raised when an attempted activity transition is not allowed."""


_ALLOWED_TRANSITIONS: Final[dict[ActivityState, frozenset[ActivityState]]] = {
    ActivityState.ACTIVE: frozenset({ActivityState.INACTIVE}),
    ActivityState.INACTIVE: frozenset({ActivityState.ACTIVE}),
}


def can_transition(from_state: ActivityState, to_state: ActivityState) -> bool:
    """Return whether the transition is valid for the activity state machine."""

    return to_state in _ALLOWED_TRANSITIONS[from_state]


def assert_transition(from_state: ActivityState, to_state: ActivityState) -> None:
    """Assert a transition is allowed, else raise deterministic domain error."""

    if not can_transition(from_state, to_state):
        raise InvalidActivityTransitionError(
            f"Invalid activity transition: {from_state.value} -> {to_state.value}"
        )
