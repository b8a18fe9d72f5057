"""admin-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging

import uvicorn
from fastapi import FastAPI

from identity_admin.application.ports.password_hasher_port import PasswordHasherPort
from identity_admin.application.services.role_lifecycle_service import RoleLifecycleService
from identity_admin.application.services.user_lifecycle_service import UserLifecycleService
from identity_admin.config.settings import load_settings
from identity_admin.infrastructure.db.session import create_session_factory
from identity_admin.infrastructure.db.unit_of_work import SqlAlchemyUnitOfWork
from identity_admin.infrastructure.http.error_handlers import register_exception_handlers
from identity_admin.infrastructure.http.role_router import build_role_router
from identity_admin.infrastructure.http.user_router import build_user_router
from identity_admin.infrastructure.logging import configure_logging
from identity_admin.infrastructure.security.password_hasher import (
    DEFAULT_BCRYPT_ROUNDS,
    BcryptPasswordHasher,
)

ADMIN_API_HOST = "0.0.0.0"
ADMIN_API_PORT = 8000
logger = logging.getLogger(__name__)


def build_lifecycle_services(
    database_url: str,
    *,
    password_hasher: PasswordHasherPort,
) -> tuple[RoleLifecycleService, UserLifecycleService]:
    """Build role and user services sharing one SQLAlchemy session factory."""

    unit_of_work = SqlAlchemyUnitOfWork(create_session_factory(database_url))
    return (
        RoleLifecycleService(unit_of_work=unit_of_work),
        UserLifecycleService(unit_of_work=unit_of_work, password_hasher=password_hasher),
    )


def create_app(
    *,
    database_url: str | None = None,
    role_service: RoleLifecycleService | None = None,
    user_service: UserLifecycleService | None = None,
    password_hasher: PasswordHasherPort | None = None,
) -> FastAPI:
    """Create FastAPI app exposing role and user administration routes."""

    settings = None
    if database_url is None and (role_service is None or user_service is None):
        settings = load_settings()
        database_url = settings.database_url
        configure_logging(level=settings.log_level)

    if role_service is None or user_service is None:
        assert database_url is not None
        if password_hasher is None:
            password_hasher = BcryptPasswordHasher(
                rounds=(
                    settings.bcrypt_rounds if settings is not None else DEFAULT_BCRYPT_ROUNDS
                )
            )
        built_role_service, built_user_service = build_lifecycle_services(
            database_url,
            password_hasher=password_hasher,
        )
        role_service = role_service or built_role_service
        user_service = user_service or built_user_service

    assert role_service is not None
    assert user_service is not None

    app = FastAPI(title="identity-admin")
    register_exception_handlers(app)
    app.include_router(build_role_router(role_service=role_service))
    app.include_router(build_user_router(user_service=user_service))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    logger.info("admin_api_app_created")
    return app


def run_asgi_server(*, host: str = ADMIN_API_HOST, port: int = ADMIN_API_PORT) -> None:
    """Run admin-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.admin_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run admin-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
