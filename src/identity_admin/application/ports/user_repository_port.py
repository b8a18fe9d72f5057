"""Port for user persistence and state-filtered lookups."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from identity_admin.application.ports.role_repository_port import RoleRecord
from identity_admin.domain.activity_state import ActivityState


@dataclass(frozen=True)
class UserRecord:
    """User persistence model with its resolved role, if any."""

    user_id: int
    first_name: str
    last_name: str
    email: str
    password_hash: str
    store_id: int
    state: ActivityState
    role: RoleRecord | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.state.is_active

    @property
    def role_id(self) -> int | None:
        return None if self.role is None else self.role.role_id


@dataclass(frozen=True)
class UserCreateInput:
    """Insert payload for one new user; id is assigned by storage."""

    first_name: str
    last_name: str
    email: str
    password_hash: str
    store_id: int
    role: RoleRecord | None
    state: ActivityState = ActivityState.ACTIVE


class DuplicateActiveUserEmailError(Exception):
    """Raised when a write would leave two active users sharing one email."""

    def __init__(self, *, email: str) -> None:
        super().__init__(f"active user email already exists: {email}")
        self.email = email


class UserRepositoryPort(Protocol):
    """User repository contract."""

    async def get_by_id(self, *, user_id: int) -> UserRecord | None:
        """Return user by id in any state."""

    async def get_by_id_and_state(
        self,
        *,
        user_id: int,
        state: ActivityState,
    ) -> UserRecord | None:
        """Return user by id only when it is in `state`."""

    async def get_by_email_and_state(
        self,
        *,
        email: str,
        state: ActivityState,
    ) -> UserRecord | None:
        """Return user with normalized `email` in `state`, or None."""

    async def list_by_role_and_state(
        self,
        *,
        role_id: int,
        state: ActivityState,
    ) -> list[UserRecord]:
        """Return users in `state` referencing `role_id`."""

    async def list_by_store_and_state(
        self,
        *,
        store_id: int,
        state: ActivityState,
    ) -> list[UserRecord]:
        """Return users in `state` scoped to `store_id`."""

    async def list_all(self) -> list[UserRecord]:
        """Return every user ordered by id."""

    async def list_by_state(self, *, state: ActivityState) -> list[UserRecord]:
        """Return users in `state` ordered by id."""

    async def save(self, user: UserCreateInput | UserRecord) -> UserRecord:
        """Insert a new user or overwrite an existing one, returning the stored row."""
