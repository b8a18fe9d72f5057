"""FastAPI router for user administration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from identity_admin.application.dto.admin_models import (
    UserCreatePayload,
    UserPermissionsResponse,
    UserResponse,
    UserUpdatePayload,
)
from identity_admin.application.ports.user_repository_port import UserRecord
from identity_admin.application.services.user_lifecycle_service import (
    UserCreateRequest,
    UserLifecycleService,
    UserPatch,
)
from identity_admin.domain.activity_state import ActivityState
from identity_admin.domain.permissions import sorted_permissions
from identity_admin.infrastructure.http.role_router import role_response


def user_response(record: UserRecord) -> UserResponse:
    """Render one user record without its password hash."""

    return UserResponse(
        user_id=record.user_id,
        first_name=record.first_name,
        last_name=record.last_name,
        email=record.email,
        store_id=record.store_id,
        active=record.is_active,
        role=None if record.role is None else role_response(record.role),
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def build_user_router(*, user_service: UserLifecycleService) -> APIRouter:
    """Build router exposing user lifecycle and role-assignment endpoints."""

    router = APIRouter(prefix="/users", tags=["users"])

    @router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    async def create_user(payload: UserCreatePayload) -> UserResponse:
        created = await user_service.create_user(
            payload=UserCreateRequest(
                first_name=payload.first_name,
                last_name=payload.last_name,
                email=payload.email,
                password=payload.password,
                store_id=payload.store_id,
                role_id=payload.role_id,
            )
        )
        return user_response(created)

    @router.get("/active", response_model=list[UserResponse])
    async def list_active_users() -> list[UserResponse]:
        return [user_response(user) for user in await user_service.list_active_users()]

    @router.get("/all", response_model=list[UserResponse])
    async def list_users() -> list[UserResponse]:
        return [user_response(user) for user in await user_service.list_users()]

    @router.get("/store/{store_id}", response_model=list[UserResponse])
    async def list_users_by_store(store_id: int) -> list[UserResponse]:
        users = await user_service.list_users_by_store(store_id=store_id)
        return [user_response(user) for user in users]

    @router.get("/{user_id}", response_model=UserResponse)
    async def get_user(user_id: int) -> UserResponse:
        user = await user_service.get_user(user_id=user_id)
        if user is None:
            raise HTTPException(status_code=404, detail=f"active user not found: {user_id}")
        return user_response(user)

    @router.get("/{user_id}/permissions", response_model=UserPermissionsResponse)
    async def list_user_permissions(user_id: int) -> UserPermissionsResponse:
        permissions = await user_service.list_user_permissions(user_id=user_id)
        return UserPermissionsResponse(
            user_id=user_id,
            permissions=sorted_permissions(permissions),
        )

    @router.put("/{user_id}", response_model=UserResponse)
    async def update_user(user_id: int, payload: UserUpdatePayload) -> UserResponse:
        updated = await user_service.update_user(
            user_id=user_id,
            patch=UserPatch(
                first_name=payload.first_name,
                last_name=payload.last_name,
                email=payload.email,
                password=payload.password,
                store_id=payload.store_id,
                role_id=payload.role_id,
                state=None if payload.active is None else ActivityState.from_flag(payload.active),
            ),
        )
        return user_response(updated)

    @router.delete("/{user_id}", response_model=UserResponse)
    async def deactivate_user(user_id: int) -> UserResponse:
        return user_response(await user_service.deactivate_user(user_id=user_id))

    @router.put("/{user_id}/reactivate", response_model=UserResponse)
    async def reactivate_user(user_id: int) -> UserResponse:
        return user_response(await user_service.reactivate_user(user_id=user_id))

    @router.put("/{user_id}/role/{role_id}", response_model=UserResponse)
    async def assign_role(user_id: int, role_id: int) -> UserResponse:
        return user_response(await user_service.assign_role(user_id=user_id, role_id=role_id))

    @router.delete("/{user_id}/role", response_model=UserResponse)
    async def remove_role(user_id: int) -> UserResponse:
        return user_response(await user_service.remove_role(user_id=user_id))

    return router
