from __future__ import annotations

import pytest
from lifecycle_fakes import FakeUnitOfWork, make_role, make_user

from identity_admin.application.services.role_lifecycle_service import (
    InvalidRoleNameError,
    RoleCreateRequest,
    RoleInUseError,
    RoleLifecycleService,
    RoleNameConflictError,
    RoleNameInUseError,
    RoleNotFoundError,
    RolePatch,
)
from identity_admin.domain.activity_state import ActivityState
from identity_admin.domain.errors import (
    ConflictingStateError,
    InvalidArgumentError,
    NotFoundError,
)
from identity_admin.domain.permissions import Permission


@pytest.mark.asyncio
async def test_create_role_persists_active_role_with_trimmed_name() -> None:
    unit_of_work = FakeUnitOfWork()
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    created = await service.create_role(
        payload=RoleCreateRequest(
            name="  ADMIN ",
            permissions=frozenset({Permission.CREATE_USER, Permission.VIEW_USER}),
        )
    )

    assert created.role_id == 1
    assert created.name == "ADMIN"
    assert created.state is ActivityState.ACTIVE
    assert created.permissions == frozenset({Permission.CREATE_USER, Permission.VIEW_USER})
    assert unit_of_work.commits == 1


@pytest.mark.asyncio
async def test_create_role_rejects_name_held_by_active_role() -> None:
    unit_of_work = FakeUnitOfWork(roles=[make_role(role_id=1, name="ADMIN")])
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    with pytest.raises(RoleNameConflictError) as exc_info:
        await service.create_role(payload=RoleCreateRequest(name="ADMIN"))

    assert isinstance(exc_info.value, ConflictingStateError)
    assert "save" not in unit_of_work.roles.calls
    assert len(unit_of_work.roles.roles) == 1


@pytest.mark.asyncio
async def test_create_role_reuses_name_of_inactive_role() -> None:
    unit_of_work = FakeUnitOfWork(
        roles=[make_role(role_id=1, name="ADMIN", state=ActivityState.INACTIVE)]
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    created = await service.create_role(payload=RoleCreateRequest(name="ADMIN"))

    assert created.role_id == 2
    assert created.state is ActivityState.ACTIVE


@pytest.mark.asyncio
async def test_create_role_rejects_blank_name_before_opening_unit_of_work() -> None:
    unit_of_work = FakeUnitOfWork()
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    with pytest.raises(InvalidRoleNameError):
        await service.create_role(payload=RoleCreateRequest(name="   "))

    assert unit_of_work.begin_calls == 0


@pytest.mark.asyncio
async def test_deactivate_role_without_active_users_marks_inactive() -> None:
    role = make_role(role_id=1)
    unit_of_work = FakeUnitOfWork(
        roles=[role],
        users=[make_user(user_id=1, role=role, state=ActivityState.INACTIVE)],
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    deactivated = await service.deactivate_role(role_id=1)

    assert deactivated.state is ActivityState.INACTIVE
    assert unit_of_work.roles.roles[1].state is ActivityState.INACTIVE


@pytest.mark.asyncio
async def test_deactivate_role_with_active_user_is_blocked_and_unchanged() -> None:
    role = make_role(role_id=1, name="ADMIN")
    unit_of_work = FakeUnitOfWork(roles=[role], users=[make_user(user_id=7, role=role)])
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    with pytest.raises(RoleInUseError) as exc_info:
        await service.deactivate_role(role_id=1)

    assert exc_info.value.active_user_count == 1
    assert "ADMIN" in str(exc_info.value)
    assert unit_of_work.roles.roles[1].state is ActivityState.ACTIVE
    assert "save" not in unit_of_work.roles.calls


@pytest.mark.asyncio
@pytest.mark.parametrize("role_id", [1, 99])
async def test_deactivate_role_requires_active_role(role_id: int) -> None:
    unit_of_work = FakeUnitOfWork(
        roles=[make_role(role_id=1, state=ActivityState.INACTIVE)]
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    with pytest.raises(RoleNotFoundError) as exc_info:
        await service.deactivate_role(role_id=role_id)

    assert isinstance(exc_info.value, NotFoundError)
    assert str(exc_info.value) == f"active role not found: {role_id}"


@pytest.mark.asyncio
async def test_reactivate_role_restores_active_state() -> None:
    unit_of_work = FakeUnitOfWork(
        roles=[make_role(role_id=1, state=ActivityState.INACTIVE)]
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    reactivated = await service.reactivate_role(role_id=1)

    assert reactivated.state is ActivityState.ACTIVE


@pytest.mark.asyncio
async def test_reactivate_role_requires_inactive_role() -> None:
    unit_of_work = FakeUnitOfWork(roles=[make_role(role_id=1)])
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    with pytest.raises(RoleNotFoundError, match="inactive role not found: 1"):
        await service.reactivate_role(role_id=1)


@pytest.mark.asyncio
async def test_reactivate_role_conflicts_when_name_was_taken_meanwhile() -> None:
    unit_of_work = FakeUnitOfWork(
        roles=[
            make_role(role_id=1, name="ADMIN", state=ActivityState.INACTIVE),
            make_role(role_id=2, name="ADMIN"),
        ]
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    with pytest.raises(RoleNameConflictError):
        await service.reactivate_role(role_id=1)

    assert unit_of_work.roles.roles[1].state is ActivityState.INACTIVE


@pytest.mark.asyncio
async def test_update_role_replaces_permissions_and_keeps_name() -> None:
    unit_of_work = FakeUnitOfWork(
        roles=[make_role(role_id=1, permissions=frozenset({Permission.VIEW_USER}))]
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    updated = await service.update_role(
        role_id=1,
        patch=RolePatch(permissions=frozenset({Permission.DELETE_USER})),
    )

    assert updated.name == "ADMIN"
    assert updated.permissions == frozenset({Permission.DELETE_USER})


@pytest.mark.asyncio
async def test_update_role_to_same_name_is_allowed() -> None:
    unit_of_work = FakeUnitOfWork(roles=[make_role(role_id=1, name="ADMIN")])
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    updated = await service.update_role(role_id=1, patch=RolePatch(name="ADMIN"))

    assert updated.name == "ADMIN"
    assert "get_by_name_and_state" not in unit_of_work.roles.calls


@pytest.mark.asyncio
async def test_update_role_rejects_name_of_other_active_role() -> None:
    unit_of_work = FakeUnitOfWork(
        roles=[make_role(role_id=1, name="ADMIN"), make_role(role_id=2, name="CLERK")]
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    with pytest.raises(RoleNameInUseError) as exc_info:
        await service.update_role(role_id=2, patch=RolePatch(name="ADMIN"))

    assert isinstance(exc_info.value, InvalidArgumentError)
    assert unit_of_work.roles.roles[2].name == "CLERK"


@pytest.mark.asyncio
async def test_update_role_edits_inactive_role() -> None:
    unit_of_work = FakeUnitOfWork(
        roles=[make_role(role_id=1, name="OLD", state=ActivityState.INACTIVE)]
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    updated = await service.update_role(role_id=1, patch=RolePatch(name="NEW"))

    assert updated.name == "NEW"
    assert updated.state is ActivityState.INACTIVE


@pytest.mark.asyncio
async def test_update_role_deactivation_runs_active_user_guard() -> None:
    role = make_role(role_id=1)
    unit_of_work = FakeUnitOfWork(roles=[role], users=[make_user(user_id=1, role=role)])
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    with pytest.raises(RoleInUseError):
        await service.update_role(
            role_id=1,
            patch=RolePatch(name="RENAMED", state=ActivityState.INACTIVE),
        )

    assert unit_of_work.roles.roles[1].name == "ADMIN"
    assert unit_of_work.roles.roles[1].state is ActivityState.ACTIVE


@pytest.mark.asyncio
async def test_update_role_activation_checks_name_among_active_roles() -> None:
    unit_of_work = FakeUnitOfWork(
        roles=[
            make_role(role_id=1, name="ADMIN", state=ActivityState.INACTIVE),
            make_role(role_id=2, name="ADMIN"),
        ]
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    with pytest.raises(RoleNameInUseError):
        await service.update_role(role_id=1, patch=RolePatch(state=ActivityState.ACTIVE))


@pytest.mark.asyncio
async def test_update_role_unknown_id_raises_not_found() -> None:
    service = RoleLifecycleService(unit_of_work=FakeUnitOfWork())

    with pytest.raises(RoleNotFoundError, match="^role not found: 5$"):
        await service.update_role(role_id=5, patch=RolePatch(name="X"))


@pytest.mark.asyncio
async def test_queries_respect_activity_state() -> None:
    unit_of_work = FakeUnitOfWork(
        roles=[
            make_role(role_id=1, name="ADMIN"),
            make_role(role_id=2, name="OLD", state=ActivityState.INACTIVE),
            make_role(role_id=3, name="CLERK"),
        ]
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    assert await service.get_role(role_id=2) is None
    assert (await service.get_role(role_id=3)).name == "CLERK"
    assert [role.role_id for role in await service.list_active_roles()] == [1, 3]
    assert [role.role_id for role in await service.list_roles()] == [1, 2, 3]


@pytest.mark.asyncio
async def test_update_role_may_take_name_held_only_by_inactive_role() -> None:
    unit_of_work = FakeUnitOfWork(
        roles=[
            make_role(role_id=1, name="ADMIN"),
            make_role(role_id=2, name="CLERK", state=ActivityState.INACTIVE),
        ]
    )
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    updated = await service.update_role(role_id=1, patch=RolePatch(name="CLERK"))

    assert updated.name == "CLERK"
    assert updated.state is ActivityState.ACTIVE
    assert unit_of_work.roles.roles[2].name == "CLERK"
    assert unit_of_work.roles.roles[2].state is ActivityState.INACTIVE


@pytest.mark.asyncio
async def test_role_deactivate_then_reactivate_keeps_name_and_permissions() -> None:
    permissions = frozenset({Permission.CREATE_USER, Permission.DELETE_USER})
    original = make_role(role_id=1, name="ADMIN", permissions=permissions)
    unit_of_work = FakeUnitOfWork(roles=[original])
    service = RoleLifecycleService(unit_of_work=unit_of_work)

    await service.deactivate_role(role_id=1)
    reactivated = await service.reactivate_role(role_id=1)

    assert reactivated.role_id == original.role_id
    assert reactivated.name == "ADMIN"
    assert reactivated.permissions == permissions
    assert reactivated.state is ActivityState.ACTIVE
