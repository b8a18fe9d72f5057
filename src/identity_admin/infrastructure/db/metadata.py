"""SQLAlchemy metadata definitions for role and user tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()

roles = sa.Table(
    "roles",
    metadata,
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("permissions", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
    sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
)

sa.Index("ix_roles_is_active", roles.c.is_active)
sa.Index(
    "ux_roles_name_active_true",
    roles.c.name,
    unique=True,
    sqlite_where=sa.text("is_active = 1"),
    postgresql_where=sa.text("is_active = true"),
)

users = sa.Table(
    "users",
    metadata,
    sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
    sa.Column("first_name", sa.Text(), nullable=False),
    sa.Column("last_name", sa.Text(), nullable=False),
    sa.Column("email", sa.Text(), nullable=False),
    sa.Column("password_hash", sa.Text(), nullable=False),
    sa.Column("store_id", sa.Integer(), nullable=False),
    sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=True),
    sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
    sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    ),
)

sa.Index("ix_users_role_id_is_active", users.c.role_id, users.c.is_active)
sa.Index("ix_users_store_id_is_active", users.c.store_id, users.c.is_active)
sa.Index(
    "ux_users_email_active_true",
    users.c.email,
    unique=True,
    sqlite_where=sa.text("is_active = 1"),
    postgresql_where=sa.text("is_active = true"),
)
