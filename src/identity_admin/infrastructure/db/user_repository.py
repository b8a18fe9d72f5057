"""SQLAlchemy adapter for user persistence queries."""

from __future__ import annotations

from datetime import datetime
from typing import Any, cast

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from identity_admin.application.ports.role_repository_port import RoleRecord
from identity_admin.application.ports.user_repository_port import (
    DuplicateActiveUserEmailError,
    UserCreateInput,
    UserRecord,
    UserRepositoryPort,
)
from identity_admin.domain.activity_state import ActivityState
from identity_admin.infrastructure.db.metadata import roles, users
from identity_admin.infrastructure.db.role_repository import load_permissions


def _is_duplicate_active_email_error(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "ux_users_email_active_true" in message or "users.email" in message


class SqlAlchemyUserRepository(UserRepositoryPort):
    """User repository bound to one open SQLAlchemy async session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, *, user_id: int) -> UserRecord | None:
        """Return user by id in any state."""

        return await self._fetch_one(_select_users().where(users.c.id == user_id).limit(1))

    async def get_by_id_and_state(
        self,
        *,
        user_id: int,
        state: ActivityState,
    ) -> UserRecord | None:
        """Return user by id only when it is in `state`."""

        statement = (
            _select_users()
            .where(users.c.id == user_id, users.c.is_active.is_(state.is_active))
            .limit(1)
        )
        return await self._fetch_one(statement)

    async def get_by_email_and_state(
        self,
        *,
        email: str,
        state: ActivityState,
    ) -> UserRecord | None:
        """Return user with normalized `email` in `state`, or None."""

        statement = (
            _select_users()
            .where(users.c.email == email, users.c.is_active.is_(state.is_active))
            .order_by(users.c.id)
            .limit(1)
        )
        return await self._fetch_one(statement)

    async def list_by_role_and_state(
        self,
        *,
        role_id: int,
        state: ActivityState,
    ) -> list[UserRecord]:
        """Return users in `state` referencing `role_id`."""

        return await self._fetch_all(
            _select_users().where(
                users.c.role_id == role_id,
                users.c.is_active.is_(state.is_active),
            )
        )

    async def list_by_store_and_state(
        self,
        *,
        store_id: int,
        state: ActivityState,
    ) -> list[UserRecord]:
        """Return users in `state` scoped to `store_id`."""

        return await self._fetch_all(
            _select_users().where(
                users.c.store_id == store_id,
                users.c.is_active.is_(state.is_active),
            )
        )

    async def list_all(self) -> list[UserRecord]:
        """Return every user ordered by id."""

        return await self._fetch_all(_select_users())

    async def list_by_state(self, *, state: ActivityState) -> list[UserRecord]:
        """Return users in `state` ordered by id."""

        return await self._fetch_all(
            _select_users().where(users.c.is_active.is_(state.is_active))
        )

    async def save(self, user: UserCreateInput | UserRecord) -> UserRecord:
        """Insert a new user or overwrite an existing one, returning the stored row."""

        values: dict[str, Any] = {
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "password_hash": user.password_hash,
            "store_id": user.store_id,
            "role_id": None if user.role is None else user.role.role_id,
            "is_active": user.state.is_active,
        }
        if isinstance(user, UserRecord):
            statement: Any = (
                sa.update(users)
                .where(users.c.id == user.user_id)
                .values(**values, updated_at=sa.func.current_timestamp())
            )
        else:
            statement = sa.insert(users).values(**values).returning(users.c.id)

        try:
            result = await self._session.execute(statement)
        except IntegrityError as error:
            if _is_duplicate_active_email_error(error):
                raise DuplicateActiveUserEmailError(email=user.email) from error
            raise

        user_id = user.user_id if isinstance(user, UserRecord) else int(result.scalar_one())
        stored = await self.get_by_id(user_id=user_id)
        if stored is None:  # pragma: no cover - row written in this transaction.
            raise LookupError(f"user disappeared after write: {user_id}")
        return stored

    async def _fetch_one(self, statement: sa.Select[Any]) -> UserRecord | None:
        result = await self._session.execute(statement)
        row = result.mappings().first()
        if row is None:
            return None
        return _to_user_record(row)

    async def _fetch_all(self, statement: sa.Select[Any]) -> list[UserRecord]:
        result = await self._session.execute(statement.order_by(users.c.id))
        return [_to_user_record(row) for row in result.mappings().all()]


def _select_users() -> sa.Select[Any]:
    return sa.select(
        users.c.id,
        users.c.first_name,
        users.c.last_name,
        users.c.email,
        users.c.password_hash,
        users.c.store_id,
        users.c.is_active,
        users.c.created_at,
        users.c.updated_at,
        roles.c.id.label("role_id"),
        roles.c.name.label("role_name"),
        roles.c.permissions.label("role_permissions"),
        roles.c.is_active.label("role_is_active"),
        roles.c.created_at.label("role_created_at"),
        roles.c.updated_at.label("role_updated_at"),
    ).select_from(users.outerjoin(roles, users.c.role_id == roles.c.id))


def _to_user_record(row: sa.RowMapping) -> UserRecord:
    role: RoleRecord | None = None
    if row["role_id"] is not None:
        role = RoleRecord(
            role_id=int(row["role_id"]),
            name=cast(str, row["role_name"]),
            permissions=load_permissions(row["role_permissions"]),
            state=ActivityState.from_flag(bool(row["role_is_active"])),
            created_at=cast(datetime, row["role_created_at"]),
            updated_at=cast(datetime, row["role_updated_at"]),
        )
    return UserRecord(
        user_id=int(row["id"]),
        first_name=cast(str, row["first_name"]),
        last_name=cast(str, row["last_name"]),
        email=cast(str, row["email"]),
        password_hash=cast(str, row["password_hash"]),
        store_id=int(row["store_id"]),
        state=ActivityState.from_flag(bool(row["is_active"])),
        role=role,
        created_at=cast(datetime, row["created_at"]),
        updated_at=cast(datetime, row["updated_at"]),
    )
