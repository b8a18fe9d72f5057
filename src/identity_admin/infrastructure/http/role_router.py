"""FastAPI router for role administration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from identity_admin.application.dto.admin_models import (
    RoleCreatePayload,
    RoleResponse,
    RoleUpdatePayload,
)
from identity_admin.application.ports.role_repository_port import RoleRecord
from identity_admin.application.services.role_lifecycle_service import (
    RoleCreateRequest,
    RoleLifecycleService,
    RolePatch,
)
from identity_admin.domain.activity_state import ActivityState
from identity_admin.domain.permissions import sorted_permissions


def role_response(record: RoleRecord) -> RoleResponse:
    """Render one role record as its public response model."""

    return RoleResponse(
        role_id=record.role_id,
        name=record.name,
        permissions=sorted_permissions(record.permissions),
        active=record.is_active,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def build_role_router(*, role_service: RoleLifecycleService) -> APIRouter:
    """Build router exposing role lifecycle endpoints."""

    router = APIRouter(prefix="/roles", tags=["roles"])

    @router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
    async def create_role(payload: RoleCreatePayload) -> RoleResponse:
        created = await role_service.create_role(
            payload=RoleCreateRequest(
                name=payload.name,
                permissions=frozenset(payload.permissions),
            )
        )
        return role_response(created)

    @router.get("", response_model=list[RoleResponse])
    async def list_roles() -> list[RoleResponse]:
        return [role_response(role) for role in await role_service.list_roles()]

    @router.get("/active", response_model=list[RoleResponse])
    async def list_active_roles() -> list[RoleResponse]:
        return [role_response(role) for role in await role_service.list_active_roles()]

    @router.get("/{role_id}", response_model=RoleResponse)
    async def get_role(role_id: int) -> RoleResponse:
        role = await role_service.get_role(role_id=role_id)
        if role is None:
            raise HTTPException(status_code=404, detail=f"active role not found: {role_id}")
        return role_response(role)

    @router.put("/{role_id}", response_model=RoleResponse)
    async def update_role(role_id: int, payload: RoleUpdatePayload) -> RoleResponse:
        updated = await role_service.update_role(
            role_id=role_id,
            patch=RolePatch(
                name=payload.name,
                permissions=(
                    None if payload.permissions is None else frozenset(payload.permissions)
                ),
                state=None if payload.active is None else ActivityState.from_flag(payload.active),
            ),
        )
        return role_response(updated)

    @router.delete("/{role_id}", response_model=RoleResponse)
    async def deactivate_role(role_id: int) -> RoleResponse:
        return role_response(await role_service.deactivate_role(role_id=role_id))

    @router.put("/{role_id}/reactivate", response_model=RoleResponse)
    async def reactivate_role(role_id: int) -> RoleResponse:
        return role_response(await role_service.reactivate_role(role_id=role_id))

    return router
