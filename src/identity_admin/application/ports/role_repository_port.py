"""Port for role persistence and state-filtered lookups."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from identity_admin.domain.activity_state import ActivityState
from identity_admin.domain.permissions import Permission


@dataclass(frozen=True)
class RoleRecord:
    """Role persistence model."""

    role_id: int
    name: str
    permissions: frozenset[Permission]
    state: ActivityState
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.state.is_active


@dataclass(frozen=True)
class RoleCreateInput:
    """Insert payload for one new role; id is assigned by storage."""

    name: str
    permissions: frozenset[Permission]
    state: ActivityState = ActivityState.ACTIVE


class DuplicateActiveRoleNameError(Exception):
    """Raised when a write would leave two active roles sharing one name."""

    def __init__(self, *, name: str) -> None:
        super().__init__(f"active role name already exists: {name}")
        self.name = name


class RoleRepositoryPort(Protocol):
    """Role repository contract."""

    async def get_by_id(
        self,
        *,
        role_id: int,
        for_update: bool = False,
    ) -> RoleRecord | None:
        """Return role by id in any state, optionally locking the row."""

    async def get_by_id_and_state(
        self,
        *,
        role_id: int,
        state: ActivityState,
        for_update: bool = False,
    ) -> RoleRecord | None:
        """Return role by id only when it is in `state`, optionally locking the row."""

    async def get_by_name_and_state(
        self,
        *,
        name: str,
        state: ActivityState,
    ) -> RoleRecord | None:
        """Return role with `name` in `state`, or None."""

    async def list_all(self) -> list[RoleRecord]:
        """Return every role ordered by id."""

    async def list_by_state(self, *, state: ActivityState) -> list[RoleRecord]:
        """Return roles in `state` ordered by id."""

    async def save(self, role: RoleCreateInput | RoleRecord) -> RoleRecord:
        """Insert a new role or overwrite an existing one, returning the stored row."""
