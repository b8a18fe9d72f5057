"""SQLAlchemy transaction boundary for lifecycle operations."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from identity_admin.application.ports.unit_of_work_port import UnitOfWorkPort
from identity_admin.infrastructure.db.role_repository import SqlAlchemyRoleRepository
from identity_admin.infrastructure.db.user_repository import SqlAlchemyUserRepository


@dataclass(frozen=True)
class SqlAlchemyLifecycleStore:
    """Role and user repositories sharing one session and transaction."""

    roles: SqlAlchemyRoleRepository
    users: SqlAlchemyUserRepository


class SqlAlchemyUnitOfWork(UnitOfWorkPort):
    """Unit of work opening one SQLAlchemy transaction per lifecycle operation."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[SqlAlchemyLifecycleStore]:
        """Yield repositories bound to a transaction committed on clean exit."""

        async with self._session_factory() as session, session.begin():
            yield SqlAlchemyLifecycleStore(
                roles=SqlAlchemyRoleRepository(session),
                users=SqlAlchemyUserRepository(session),
            )
