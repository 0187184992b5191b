"""Users, roles and the capability registry."""
import pytest
from sqlalchemy import select

from common import (
    ConflictError,
    ProtectedResourceError,
    ResourceInUseError,
    ValidationFailedError,
)
from conftest import PASSWORD
from pipeline_docs.db.models import AuditAction, AuditLog
from pipeline_docs.db.schemas import UserCreate, UserUpdate
from pipeline_docs.services.v1 import (
    Action,
    AuditContext,
    AuditEntry,
    AuditService,
    Module,
    PermissionResolver,
    RoleService,
    UserService,
    is_registered,
    validate_capability,
)


# ============================================
# Capability registry
# ============================================


def test_registry_membership():
    assert is_registered(Module.DOCUMENTS, Action.UPLOAD)
    assert is_registered("audit", "export")
    assert not is_registered("documents", "create")
    assert not is_registered("reports", "view")


def test_validate_capability_rejects_unknown_pairs():
    assert validate_capability("users", "view") == (Module.USERS, Action.VIEW)
    with pytest.raises(ValidationFailedError):
        validate_capability("documents", "export")


# ============================================
# Roles
# ============================================


async def test_system_role_permissions_are_frozen(db, world):
    roles = RoleService(db)
    upload = world.permission_ids[("documents", "upload")]
    view = world.permission_ids[("documents", "view")]

    with pytest.raises(ProtectedResourceError):
        await roles.assign_permission_to_role(world.engineer_role_id, upload)
    with pytest.raises(ProtectedResourceError):
        await roles.remove_permission_from_role(world.engineer_role_id, view)
    with pytest.raises(ProtectedResourceError):
        await roles.update_role(world.engineer_role_id, permission_ids=[view])
    with pytest.raises(ProtectedResourceError):
        await roles.delete_role(world.admin_role_id)


async def test_system_role_can_be_renamed_and_keep_same_permissions(db, world):
    roles = RoleService(db)
    current = await roles.get_role(world.engineer_role_id)
    same_ids = [p.permission_id for p in current.permissions]

    role = await roles.update_role(
        world.engineer_role_id, name="Field engineer", permission_ids=same_ids
    )

    assert role.name == "Field engineer"


async def test_custom_role_permission_set_is_replaced(db, world):
    roles = RoleService(db)
    view = world.permission_ids[("documents", "view")]
    export = world.permission_ids[("audit", "export")]

    await roles.update_role(world.custom_role_id, permission_ids=[view, export])

    role = await roles.get_role(world.custom_role_id)
    assert {(p.module, p.action) for p in role.permissions} == {
        ("documents", "view"),
        ("audit", "export"),
    }


async def test_assigning_permission_twice_is_a_no_op(db, world):
    roles = RoleService(db)
    audit_view = world.permission_ids[("audit", "view")]

    await roles.assign_permission_to_role(world.custom_role_id, audit_view)

    role = await roles.get_role(world.custom_role_id)
    assert [p.permission_id for p in role.permissions] == [audit_view]


async def test_role_name_is_unique(db, world):
    with pytest.raises(ConflictError):
        await RoleService(db).create_role("Engineer")


async def test_only_registered_permissions_can_be_created(db, world):
    roles = RoleService(db)

    with pytest.raises(ValidationFailedError):
        await roles.create_permission("documents", "teleport")
    with pytest.raises(ConflictError):
        await roles.create_permission("documents", "view")


async def test_replace_user_role_leaves_exactly_one(db, world):
    roles = RoleService(db)
    await roles.assign_role_to_user(world.engineer_id, world.custom_role_id)

    await roles.replace_user_role(world.engineer_id, world.admin_role_id)

    held = await PermissionResolver(db).get_user_roles(world.engineer_id)
    assert [r.role_id for r in held] == [world.admin_role_id]


async def test_deleting_custom_role_drops_its_grants(db, world):
    roles = RoleService(db)
    await roles.assign_role_to_user(world.outsider_id, world.custom_role_id)

    await roles.delete_role(world.custom_role_id)

    assert await PermissionResolver(db).get_user_roles(world.outsider_id) == []


# ============================================
# Users
# ============================================


async def test_authenticate_reports_failure_reason(db, world):
    users = UserService(db)

    assert (await users.authenticate("admin", PASSWORD)).ok
    assert (await users.authenticate("nobody", PASSWORD)).reason == "unknown_user"
    assert (await users.authenticate("admin", "wrong-password")).reason == "invalid_password"
    assert (await users.authenticate("inactive", PASSWORD)).reason == "user_inactive"


async def test_create_user_enforces_uniqueness_and_password_policy(db, world):
    users = UserService(db, password_min_length=8)

    with pytest.raises(ValidationFailedError):
        await users.create_user(UserCreate(username="newbie", full_name="New", password="short"))
    with pytest.raises(ConflictError):
        await users.create_user(UserCreate(username="admin", full_name="Dup", password="long-enough"))

    user = await users.create_user(
        UserCreate(username="newbie", full_name="New", email="new@example.com", password="long-enough")
    )
    assert user.password_hash != "long-enough"
    assert (await users.authenticate("newbie", "long-enough")).ok


async def test_update_user_rejects_taken_email(db, world):
    users = UserService(db)
    await users.update_user(world.engineer_id, UserUpdate(email="eng@example.com"))

    with pytest.raises(ConflictError):
        await users.update_user(world.outsider_id, UserUpdate(email="eng@example.com"))


async def test_change_password_checks_current(db, world):
    users = UserService(db)

    with pytest.raises(ValidationFailedError):
        await users.change_password(world.engineer_id, "not-it", "brand-new-pass")

    await users.change_password(world.engineer_id, PASSWORD, "brand-new-pass")
    assert (await users.authenticate("engineer", "brand-new-pass")).ok


async def test_uploader_cannot_be_deleted(db, world):
    users = UserService(db)

    with pytest.raises(ResourceInUseError) as exc_info:
        await users.delete_user(world.admin_id)
    assert exc_info.value.references == {"documents": 4}

    await users.delete_user(world.outsider_id)
    assert await users.get_user_by_username("outsider") is None


async def test_user_with_audit_history_cannot_be_deleted(db_manager, db, world):
    audit = AuditService(db_manager)
    await audit.record(AuditContext(user_id=world.engineer_id), AuditEntry(AuditAction.LOGIN, "auth"))

    with pytest.raises(ResourceInUseError) as exc_info:
        await UserService(db).delete_user(world.engineer_id)
    assert exc_info.value.references == {"audit_logs": 1}

    actors = await db.scalars(select(AuditLog.user_id).where(AuditLog.action == AuditAction.LOGIN))
    assert list(actors) == [world.engineer_id]


async def test_list_users_includes_roles(db, world):
    listed = {row.user.username: row for row in await UserService(db).list_users()}

    assert [r.name for r in listed["admin"].roles] == ["Administrator"]
    assert listed["outsider"].roles == []
