"""Pydantic models for role and user administration endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from identity_admin.domain.permissions import Permission


class StrictModel(BaseModel):
    """Base model with strict unknown-field rejection."""

    model_config = ConfigDict(extra="forbid")


class RoleCreatePayload(StrictModel):
    """Role creation request. New roles are always created active."""

    name: str = Field(min_length=1)
    permissions: list[Permission] = Field(default_factory=list)


class RoleUpdatePayload(StrictModel):
    """Partial role update; omitted or null fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1)
    permissions: list[Permission] | None = None
    active: bool | None = None


class RoleResponse(StrictModel):
    """Role representation returned by role and user endpoints."""

    role_id: int
    name: str
    permissions: list[Permission]
    active: bool
    created_at: datetime
    updated_at: datetime


class UserCreatePayload(StrictModel):
    """User creation request. `role_id` is required by the lifecycle rules."""

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str
    password: str
    store_id: int
    role_id: int | None = None


class UserUpdatePayload(StrictModel):
    """Partial user update; omitted or null fields are left unchanged."""

    first_name: str | None = Field(default=None, min_length=1)
    last_name: str | None = Field(default=None, min_length=1)
    email: str | None = None
    password: str | None = None
    store_id: int | None = None
    role_id: int | None = None
    active: bool | None = None


class UserResponse(StrictModel):
    """User representation; the password hash is never exposed."""

    user_id: int
    first_name: str
    last_name: str
    email: str
    store_id: int
    active: bool
    role: RoleResponse | None
    created_at: datetime
    updated_at: datetime


class UserPermissionsResponse(StrictModel):
    """Permissions granted to one active user through its role."""

    user_id: int
    permissions: list[Permission]


class ErrorResponse(StrictModel):
    """Uniform error payload for every failed request."""

    timestamp: datetime
    status: int
    error: str
    message: str
