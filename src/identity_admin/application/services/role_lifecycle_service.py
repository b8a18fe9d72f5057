"""Application service for role lifecycle management."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from identity_admin.application.ports.role_repository_port import (
    DuplicateActiveRoleNameError,
    RoleCreateInput,
    RoleRecord,
)
from identity_admin.application.ports.unit_of_work_port import (
    LifecycleStorePort,
    UnitOfWorkPort,
)
from identity_admin.domain.activity_state import ActivityState, assert_transition
from identity_admin.domain.credentials import normalize_role_name
from identity_admin.domain.errors import (
    ConflictingStateError,
    InvalidArgumentError,
    NotFoundError,
)
from identity_admin.domain.permissions import Permission

logger = logging.getLogger(__name__)


class RoleNotFoundError(NotFoundError):
    """Raised when a role id does not resolve in the required state."""

    def __init__(self, *, role_id: int, state: ActivityState | None = None) -> None:
        qualifier = "" if state is None else f"{state.value} "
        super().__init__(f"{qualifier}role not found: {role_id}")
        self.role_id = role_id
        self.state = state


class InvalidRoleNameError(InvalidArgumentError):
    """Raised when a role name is blank."""


class RoleNameConflictError(ConflictingStateError):
    """Raised when a role would become active under a name another active role holds."""

    def __init__(self, *, name: str) -> None:
        super().__init__(f"an active role already uses the name: {name}")
        self.name = name


class RoleNameInUseError(InvalidArgumentError):
    """Raised when an update renames a role to a name held by another active role."""

    def __init__(self, *, name: str) -> None:
        super().__init__(f"role name '{name}' is already used by another active role")
        self.name = name


class RoleInUseError(ConflictingStateError):
    """Raised when deactivating a role that active users still reference."""

    def __init__(self, *, role_id: int, name: str, active_user_count: int) -> None:
        super().__init__(
            f"role '{name}' cannot be deactivated while linked to "
            f"{active_user_count} active user(s)"
        )
        self.role_id = role_id
        self.name = name
        self.active_user_count = active_user_count


@dataclass(frozen=True)
class RoleCreateRequest:
    """Input for role creation. New roles always start active."""

    name: str
    permissions: frozenset[Permission] = frozenset()


@dataclass(frozen=True)
class RolePatch:
    """Partial role update; a None field means "leave unchanged"."""

    name: str | None = None
    permissions: frozenset[Permission] | None = None
    state: ActivityState | None = None


class RoleLifecycleService:
    """Create, edit, deactivate, reactivate and query roles."""

    def __init__(self, *, unit_of_work: UnitOfWorkPort) -> None:
        self._unit_of_work = unit_of_work

    async def create_role(self, *, payload: RoleCreateRequest) -> RoleRecord:
        """Persist a new active role when no active role holds its name."""

        name = _normalize_name(payload.name)
        async with self._unit_of_work.begin() as store:
            await _require_name_free(store, name=name, error=RoleNameConflictError)
            try:
                created = await store.roles.save(
                    RoleCreateInput(
                        name=name,
                        permissions=frozenset(payload.permissions),
                        state=ActivityState.ACTIVE,
                    )
                )
            except DuplicateActiveRoleNameError as exc:
                raise RoleNameConflictError(name=name) from exc

        logger.info("role_created role_id=%s name=%s", created.role_id, created.name)
        return created

    async def update_role(self, *, role_id: int, patch: RolePatch) -> RoleRecord:
        """Apply a partial update to a role in any state.

        Permissions replace the stored set. A state flip to inactive runs the
        same active-user guard as `deactivate_role`; a flip to active requires
        the role name to be free among active roles.
        """

        async with self._unit_of_work.begin() as store:
            existing = await store.roles.get_by_id(role_id=role_id, for_update=True)
            if existing is None:
                raise RoleNotFoundError(role_id=role_id)

            name = existing.name
            if patch.name is not None:
                requested_name = _normalize_name(patch.name)
                if requested_name != existing.name:
                    await _require_name_free(
                        store,
                        name=requested_name,
                        error=RoleNameInUseError,
                        ignore_role_id=role_id,
                    )
                    name = requested_name

            permissions = (
                existing.permissions
                if patch.permissions is None
                else frozenset(patch.permissions)
            )

            state = existing.state
            if patch.state is not None and patch.state is not existing.state:
                assert_transition(existing.state, patch.state)
                if patch.state is ActivityState.INACTIVE:
                    await _require_no_active_users(store, role=existing)
                elif name == existing.name:
                    await _require_name_free(
                        store,
                        name=name,
                        error=RoleNameInUseError,
                        ignore_role_id=role_id,
                    )
                state = patch.state

            try:
                updated = await store.roles.save(
                    replace(existing, name=name, permissions=permissions, state=state)
                )
            except DuplicateActiveRoleNameError as exc:
                raise RoleNameInUseError(name=name) from exc

        logger.info(
            "role_updated role_id=%s name=%s state=%s",
            updated.role_id,
            updated.name,
            updated.state.value,
        )
        return updated

    async def deactivate_role(self, *, role_id: int) -> RoleRecord:
        """Transition an active role to inactive when no active user references it."""

        async with self._unit_of_work.begin() as store:
            role = await store.roles.get_by_id_and_state(
                role_id=role_id,
                state=ActivityState.ACTIVE,
                for_update=True,
            )
            if role is None:
                raise RoleNotFoundError(role_id=role_id, state=ActivityState.ACTIVE)

            await _require_no_active_users(store, role=role)
            assert_transition(role.state, ActivityState.INACTIVE)
            deactivated = await store.roles.save(replace(role, state=ActivityState.INACTIVE))

        logger.info("role_deactivated role_id=%s", role_id)
        return deactivated

    async def reactivate_role(self, *, role_id: int) -> RoleRecord:
        """Transition an inactive role back to active."""

        async with self._unit_of_work.begin() as store:
            role = await store.roles.get_by_id_and_state(
                role_id=role_id,
                state=ActivityState.INACTIVE,
                for_update=True,
            )
            if role is None:
                raise RoleNotFoundError(role_id=role_id, state=ActivityState.INACTIVE)

            await _require_name_free(store, name=role.name, error=RoleNameConflictError)
            assert_transition(role.state, ActivityState.ACTIVE)
            try:
                reactivated = await store.roles.save(replace(role, state=ActivityState.ACTIVE))
            except DuplicateActiveRoleNameError as exc:
                raise RoleNameConflictError(name=role.name) from exc

        logger.info("role_reactivated role_id=%s", role_id)
        return reactivated

    async def get_role(self, *, role_id: int) -> RoleRecord | None:
        """Return the role only while it is active."""

        async with self._unit_of_work.begin() as store:
            return await store.roles.get_by_id_and_state(
                role_id=role_id,
                state=ActivityState.ACTIVE,
            )

    async def list_active_roles(self) -> list[RoleRecord]:
        """Return active roles ordered by id."""

        async with self._unit_of_work.begin() as store:
            return await store.roles.list_by_state(state=ActivityState.ACTIVE)

    async def list_roles(self) -> list[RoleRecord]:
        """Return every role regardless of state."""

        async with self._unit_of_work.begin() as store:
            return await store.roles.list_all()


def _normalize_name(name: str) -> str:
    try:
        return normalize_role_name(name=name)
    except ValueError as exc:
        raise InvalidRoleNameError(str(exc)) from exc


async def _require_name_free(
    store: LifecycleStorePort,
    *,
    name: str,
    error: type[RoleNameConflictError] | type[RoleNameInUseError],
    ignore_role_id: int | None = None,
) -> None:
    """Raise `error` when another active role already holds `name`."""

    holder = await store.roles.get_by_name_and_state(name=name, state=ActivityState.ACTIVE)
    if holder is not None and holder.role_id != ignore_role_id:
        raise error(name=name)


async def _require_no_active_users(store: LifecycleStorePort, *, role: RoleRecord) -> None:
    """Reject deactivation while active users still reference the role."""

    dependents = await store.users.list_by_role_and_state(
        role_id=role.role_id,
        state=ActivityState.ACTIVE,
    )
    if dependents:
        logger.info(
            "role_deactivation_blocked role_id=%s active_users=%s",
            role.role_id,
            len(dependents),
        )
        raise RoleInUseError(
            role_id=role.role_id,
            name=role.name,
            active_user_count=len(dependents),
        )

