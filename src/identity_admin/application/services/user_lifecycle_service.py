"""Application service for user lifecycle and role-assignment operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from identity_admin.application.ports.password_hasher_port import PasswordHasherPort
from identity_admin.application.ports.role_repository_port import RoleRecord
from identity_admin.application.ports.unit_of_work_port import (
    LifecycleStorePort,
    UnitOfWorkPort,
)
from identity_admin.application.ports.user_repository_port import (
    DuplicateActiveUserEmailError,
    UserCreateInput,
    UserRecord,
)
from identity_admin.application.services.role_lifecycle_service import RoleNotFoundError
from identity_admin.domain.activity_state import ActivityState, assert_transition
from identity_admin.domain.credentials import normalize_user_email, normalize_user_password
from identity_admin.domain.errors import (
    ConflictingStateError,
    InvalidArgumentError,
    NotFoundError,
)
from identity_admin.domain.permissions import Permission

logger = logging.getLogger(__name__)


class UserNotFoundError(NotFoundError):
    """Raised when a user id does not resolve in the required state."""

    def __init__(self, *, user_id: int, state: ActivityState | None = None) -> None:
        qualifier = "" if state is None else f"{state.value} "
        super().__init__(f"{qualifier}user not found: {user_id}")
        self.user_id = user_id
        self.state = state


class RoleRequiredError(InvalidArgumentError):
    """Raised when user creation does not reference a role."""

    def __init__(self) -> None:
        super().__init__("role is required to create a user")


class InvalidUserEmailError(InvalidArgumentError):
    """Raised when user email input is blank after normalization."""


class InvalidUserPasswordError(InvalidArgumentError):
    """Raised when user password input is blank after normalization."""


class UserEmailConflictError(ConflictingStateError):
    """Raised when a user would become active under an email another active user holds."""

    def __init__(self, *, email: str) -> None:
        super().__init__(f"email '{email}' is already used by an active user")
        self.email = email


class UserEmailInUseError(InvalidArgumentError):
    """Raised when an update changes email to one held by another active user."""

    def __init__(self, *, email: str) -> None:
        super().__init__(f"email '{email}' is already used by another active user")
        self.email = email


@dataclass(frozen=True)
class UserCreateRequest:
    """Input for user creation. `role_id` must reference an existing role."""

    first_name: str
    last_name: str
    email: str
    password: str
    store_id: int
    role_id: int | None


@dataclass(frozen=True)
class UserPatch:
    """Partial user update; a None field means "leave unchanged"."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    password: str | None = None
    store_id: int | None = None
    role_id: int | None = None
    state: ActivityState | None = None


class UserLifecycleService:
    """Create, edit, deactivate, reactivate and query users and their roles."""

    def __init__(
        self,
        *,
        unit_of_work: UnitOfWorkPort,
        password_hasher: PasswordHasherPort,
    ) -> None:
        self._unit_of_work = unit_of_work
        self._password_hasher = password_hasher

    async def create_user(self, *, payload: UserCreateRequest) -> UserRecord:
        """Persist a new active user attached to an existing role."""

        if payload.role_id is None:
            raise RoleRequiredError()
        email = _normalize_email(payload.email)
        password_hash = self._hash_password(payload.password)

        async with self._unit_of_work.begin() as store:
            role = await _require_role(store, role_id=payload.role_id)
            await _require_email_free(store, email=email, error=UserEmailConflictError)
            try:
                created = await store.users.save(
                    UserCreateInput(
                        first_name=payload.first_name,
                        last_name=payload.last_name,
                        email=email,
                        password_hash=password_hash,
                        store_id=payload.store_id,
                        role=role,
                        state=ActivityState.ACTIVE,
                    )
                )
            except DuplicateActiveUserEmailError as exc:
                raise UserEmailConflictError(email=email) from exc

        logger.info(
            "user_created user_id=%s role_id=%s store_id=%s",
            created.user_id,
            created.role_id,
            created.store_id,
        )
        return created

    async def update_user(self, *, user_id: int, patch: UserPatch) -> UserRecord:
        """Apply a partial update to a user in any state."""

        requested_email = None if patch.email is None else _normalize_email(patch.email)
        password_hash = None if patch.password is None else self._hash_password(patch.password)

        async with self._unit_of_work.begin() as store:
            existing = await store.users.get_by_id(user_id=user_id)
            if existing is None:
                raise UserNotFoundError(user_id=user_id)

            email = existing.email
            if requested_email is not None and requested_email != existing.email:
                await _require_email_free(
                    store,
                    email=requested_email,
                    error=UserEmailInUseError,
                    ignore_user_id=user_id,
                )
                email = requested_email

            role = existing.role
            if patch.role_id is not None:
                role = await _require_role(store, role_id=patch.role_id)

            state = existing.state
            if patch.state is not None and patch.state is not existing.state:
                assert_transition(existing.state, patch.state)
                if patch.state is ActivityState.ACTIVE and email == existing.email:
                    await _require_email_free(
                        store,
                        email=email,
                        error=UserEmailInUseError,
                        ignore_user_id=user_id,
                    )
                state = patch.state

            updated_user = replace(
                existing,
                first_name=existing.first_name if patch.first_name is None else patch.first_name,
                last_name=existing.last_name if patch.last_name is None else patch.last_name,
                email=email,
                password_hash=existing.password_hash if password_hash is None else password_hash,
                store_id=existing.store_id if patch.store_id is None else patch.store_id,
                role=role,
                state=state,
            )
            try:
                updated = await store.users.save(updated_user)
            except DuplicateActiveUserEmailError as exc:
                raise UserEmailInUseError(email=email) from exc

        logger.info(
            "user_updated user_id=%s role_id=%s state=%s",
            updated.user_id,
            updated.role_id,
            updated.state.value,
        )
        return updated

    async def deactivate_user(self, *, user_id: int) -> UserRecord:
        """Transition an active user to inactive."""

        async with self._unit_of_work.begin() as store:
            user = await _require_user_in_state(
                store,
                user_id=user_id,
                state=ActivityState.ACTIVE,
            )
            assert_transition(user.state, ActivityState.INACTIVE)
            deactivated = await store.users.save(replace(user, state=ActivityState.INACTIVE))

        logger.info("user_deactivated user_id=%s", user_id)
        return deactivated

    async def reactivate_user(self, *, user_id: int) -> UserRecord:
        """Transition an inactive user back to active."""

        async with self._unit_of_work.begin() as store:
            user = await _require_user_in_state(
                store,
                user_id=user_id,
                state=ActivityState.INACTIVE,
            )
            await _require_email_free(store, email=user.email, error=UserEmailConflictError)
            assert_transition(user.state, ActivityState.ACTIVE)
            try:
                reactivated = await store.users.save(replace(user, state=ActivityState.ACTIVE))
            except DuplicateActiveUserEmailError as exc:
                raise UserEmailConflictError(email=user.email) from exc

        logger.info("user_reactivated user_id=%s", user_id)
        return reactivated

    async def get_user(self, *, user_id: int) -> UserRecord | None:
        """Return the user only while it is active."""

        async with self._unit_of_work.begin() as store:
            return await store.users.get_by_id_and_state(
                user_id=user_id,
                state=ActivityState.ACTIVE,
            )

    async def list_active_users(self) -> list[UserRecord]:
        """Return active users ordered by id."""

        async with self._unit_of_work.begin() as store:
            return await store.users.list_by_state(state=ActivityState.ACTIVE)

    async def list_users(self) -> list[UserRecord]:
        """Return every user regardless of state."""

        async with self._unit_of_work.begin() as store:
            return await store.users.list_all()

    async def list_users_by_store(self, *, store_id: int) -> list[UserRecord]:
        """Return active users scoped to one store."""

        async with self._unit_of_work.begin() as store:
            return await store.users.list_by_store_and_state(
                store_id=store_id,
                state=ActivityState.ACTIVE,
            )

    async def list_user_permissions(self, *, user_id: int) -> frozenset[Permission]:
        """Return permissions carried by the active user's role, empty when unassigned."""

        async with self._unit_of_work.begin() as store:
            user = await _require_user_in_state(
                store,
                user_id=user_id,
                state=ActivityState.ACTIVE,
            )

        if user.role is None:
            return frozenset()
        return user.role.permissions

    async def assign_role(self, *, user_id: int, role_id: int) -> UserRecord:
        """Attach an existing role to an active user."""

        async with self._unit_of_work.begin() as store:
            user = await _require_user_in_state(
                store,
                user_id=user_id,
                state=ActivityState.ACTIVE,
            )
            role = await _require_role(store, role_id=role_id)
            updated = await store.users.save(replace(user, role=role))

        logger.info("user_role_assigned user_id=%s role_id=%s", user_id, role_id)
        return updated

    async def remove_role(self, *, user_id: int) -> UserRecord:
        """Clear the role reference of an active user."""

        async with self._unit_of_work.begin() as store:
            user = await _require_user_in_state(
                store,
                user_id=user_id,
                state=ActivityState.ACTIVE,
            )
            updated = await store.users.save(replace(user, role=None))

        logger.info("user_role_removed user_id=%s previous_role_id=%s", user_id, user.role_id)
        return updated

    def _hash_password(self, password: str) -> str:
        try:
            normalized = normalize_user_password(password=password)
        except ValueError as exc:
            raise InvalidUserPasswordError(str(exc)) from exc
        return self._password_hasher.hash_password(normalized)


def _normalize_email(email: str) -> str:
    try:
        return normalize_user_email(email=email)
    except ValueError as exc:
        raise InvalidUserEmailError(str(exc)) from exc


async def _require_role(store: LifecycleStorePort, *, role_id: int) -> RoleRecord:
    """Resolve a role in any state, locking it against concurrent deactivation."""

    role = await store.roles.get_by_id(role_id=role_id, for_update=True)
    if role is None:
        raise RoleNotFoundError(role_id=role_id)
    return role


async def _require_user_in_state(
    store: LifecycleStorePort,
    *,
    user_id: int,
    state: ActivityState,
) -> UserRecord:
    user = await store.users.get_by_id_and_state(user_id=user_id, state=state)
    if user is None:
        raise UserNotFoundError(user_id=user_id, state=state)
    return user


async def _require_email_free(
    store: LifecycleStorePort,
    *,
    email: str,
    error: type[UserEmailConflictError] | type[UserEmailInUseError],
    ignore_user_id: int | None = None,
) -> None:
    """Raise `error` when another active user already holds `email`."""

    holder = await store.users.get_by_email_and_state(email=email, state=ActivityState.ACTIVE)
    if holder is not None and holder.user_id != ignore_user_id:
        raise error(email=email)
