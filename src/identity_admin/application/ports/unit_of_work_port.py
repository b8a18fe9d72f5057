"""Port for running lifecycle reads and writes inside one storage transaction."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol

from identity_admin.application.ports.role_repository_port import RoleRepositoryPort
from identity_admin.application.ports.user_repository_port import UserRepositoryPort


class LifecycleStorePort(Protocol):
    """Repositories bound to one open transaction."""

    @property
    def roles(self) -> RoleRepositoryPort: ...

    @property
    def users(self) -> UserRepositoryPort: ...


class UnitOfWorkPort(Protocol):
    """Transaction boundary contract.

    The transaction commits when the context exits normally and rolls back when
    it exits with an exception, so a failed precondition never leaves a write.
    """

    def begin(self) -> AbstractAsyncContextManager[LifecycleStorePort]:
        """Open one transaction exposing role and user repositories."""
        ...
