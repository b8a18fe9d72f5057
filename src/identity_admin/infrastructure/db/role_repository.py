"""SQLAlchemy adapter for role persistence queries."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any, cast

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from identity_admin.application.ports.role_repository_port import (
    DuplicateActiveRoleNameError,
    RoleCreateInput,
    RoleRecord,
    RoleRepositoryPort,
)
from identity_admin.domain.activity_state import ActivityState
from identity_admin.domain.permissions import Permission, sorted_permissions
from identity_admin.infrastructure.db.metadata import roles


def _is_duplicate_active_name_error(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "ux_roles_name_active_true" in message or "roles.name" in message


class SqlAlchemyRoleRepository(RoleRepositoryPort):
    """Role repository bound to one open SQLAlchemy async session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(
        self,
        *,
        role_id: int,
        for_update: bool = False,
    ) -> RoleRecord | None:
        """Return role by id in any state, optionally locking the row."""

        statement = _select_roles().where(roles.c.id == role_id).limit(1)
        if for_update:
            statement = statement.with_for_update()
        return await self._fetch_one(statement)

    async def get_by_id_and_state(
        self,
        *,
        role_id: int,
        state: ActivityState,
        for_update: bool = False,
    ) -> RoleRecord | None:
        """Return role by id only when it is in `state`, optionally locking the row."""

        statement = (
            _select_roles()
            .where(roles.c.id == role_id, roles.c.is_active.is_(state.is_active))
            .limit(1)
        )
        if for_update:
            statement = statement.with_for_update()
        return await self._fetch_one(statement)

    async def get_by_name_and_state(
        self,
        *,
        name: str,
        state: ActivityState,
    ) -> RoleRecord | None:
        """Return role with `name` in `state`, or None."""

        statement = (
            _select_roles()
            .where(roles.c.name == name, roles.c.is_active.is_(state.is_active))
            .order_by(roles.c.id)
            .limit(1)
        )
        return await self._fetch_one(statement)

    async def list_all(self) -> list[RoleRecord]:
        """Return every role ordered by id."""

        result = await self._session.execute(_select_roles().order_by(roles.c.id))
        return [_to_role_record(row) for row in result.mappings().all()]

    async def list_by_state(self, *, state: ActivityState) -> list[RoleRecord]:
        """Return roles in `state` ordered by id."""

        statement = (
            _select_roles()
            .where(roles.c.is_active.is_(state.is_active))
            .order_by(roles.c.id)
        )
        result = await self._session.execute(statement)
        return [_to_role_record(row) for row in result.mappings().all()]

    async def save(self, role: RoleCreateInput | RoleRecord) -> RoleRecord:
        """Insert a new role or overwrite an existing one, returning the stored row."""

        values: dict[str, Any] = {
            "name": role.name,
            "permissions": _dump_permissions(role.permissions),
            "is_active": role.state.is_active,
        }
        if isinstance(role, RoleRecord):
            statement: Any = (
                sa.update(roles)
                .where(roles.c.id == role.role_id)
                .values(**values, updated_at=sa.func.current_timestamp())
            )
        else:
            statement = sa.insert(roles).values(**values).returning(roles.c.id)

        try:
            result = await self._session.execute(statement)
        except IntegrityError as error:
            if _is_duplicate_active_name_error(error):
                raise DuplicateActiveRoleNameError(name=role.name) from error
            raise

        role_id = role.role_id if isinstance(role, RoleRecord) else int(result.scalar_one())
        stored = await self.get_by_id(role_id=role_id)
        if stored is None:  # pragma: no cover - row written in this transaction.
            raise LookupError(f"role disappeared after write: {role_id}")
        return stored

    async def _fetch_one(self, statement: sa.Select[Any]) -> RoleRecord | None:
        result = await self._session.execute(statement)
        row = result.mappings().first()
        if row is None:
            return None
        return _to_role_record(row)


def _select_roles() -> sa.Select[Any]:
    return sa.select(
        roles.c.id,
        roles.c.name,
        roles.c.permissions,
        roles.c.is_active,
        roles.c.created_at,
        roles.c.updated_at,
    )


def _dump_permissions(permissions: Iterable[Permission]) -> list[str]:
    return [permission.value for permission in sorted_permissions(permissions)]


def load_permissions(raw: object) -> frozenset[Permission]:
    """Parse the JSON permission column, tolerating NULL from legacy rows."""

    if not raw:
        return frozenset()
    return frozenset(Permission(str(value)) for value in cast(list[object], raw))


def _to_role_record(row: sa.RowMapping) -> RoleRecord:
    return RoleRecord(
        role_id=int(row["id"]),
        name=cast(str, row["name"]),
        permissions=load_permissions(row["permissions"]),
        state=ActivityState.from_flag(bool(row["is_active"])),
        created_at=cast(datetime, row["created_at"]),
        updated_at=cast(datetime, row["updated_at"]),
    )
