"""Alembic migration runner for the identity-admin schema."""

from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context
from identity_admin.infrastructure.db.metadata import metadata

_PLACEHOLDER_URL = "sqlite:///./identity_admin.db"
_ASYNC_DRIVERS = ("+aiosqlite", "+asyncpg")

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def _resolve_database_url() -> str:
    """Pick the URL to migrate.

    A URL set programmatically (tests, scripts) always wins. The alembic.ini
    placeholder yields to DATABASE_URL from the environment or the repo `.env`.
    """

    configured = config.get_main_option("sqlalchemy.url") or _PLACEHOLDER_URL
    if configured != _PLACEHOLDER_URL:
        return configured

    load_dotenv(Path(__file__).resolve().parents[1] / ".env")
    return os.getenv("DATABASE_URL") or configured


def _configure(**options: object) -> None:
    context.configure(target_metadata=metadata, compare_type=True, **options)


def _migrate(connection: Connection) -> None:
    # SQLite cannot ALTER most constraints in place; batch mode rebuilds tables.
    _configure(
        connection=connection,
        render_as_batch=connection.dialect.name == "sqlite",
    )
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_async(url: str) -> None:
    engine = async_engine_from_config(
        {"sqlalchemy.url": url},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


def _migrate_sync(url: str) -> None:
    engine = engine_from_config(
        {"sqlalchemy.url": url},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with engine.connect() as connection:
        _migrate(connection)


def run_migrations_offline(url: str) -> None:
    """Emit migration SQL without a live connection."""

    _configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online(url: str) -> None:
    """Apply migrations over the sync or async driver named in `url`."""

    if any(driver in url for driver in _ASYNC_DRIVERS):
        asyncio.run(_migrate_async(url))
    else:
        _migrate_sync(url)


database_url = _resolve_database_url()
if context.is_offline_mode():
    run_migrations_offline(database_url)
else:
    run_migrations_online(database_url)
