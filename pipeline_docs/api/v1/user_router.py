# pipeline_docs/api/v1/user_router.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from common import ValidationFailedError, get_config
from pipeline_docs.api.deps import (
    get_audit_context,
    get_audit_service,
    get_permission_resolver,
    require_permission,
)
from pipeline_docs.db import get_db
from pipeline_docs.db.models import AuditAction, Role, User
from pipeline_docs.db.schemas import (
    MessageResponse,
    PermissionResponse,
    RoleResponse,
    UserAccessResponse,
    UserAccessUpdate,
    UserCreate,
    UserPermissionsResponse,
    UserResponse,
    UserRoleReplace,
    UserUpdate,
    UserWithRolesResponse,
)
from pipeline_docs.services.v1 import (
    Action,
    AuditContext,
    AuditEntry,
    AuditService,
    Module,
    OrgStructureService,
    PermissionResolver,
    RoleService,
    UserService,
)

user_router = APIRouter(
    prefix="/users",
    tags=["Users"],
)


def _with_roles(user: User, roles: List[Role]) -> UserWithRolesResponse:
    return UserWithRolesResponse(
        **UserResponse.model_validate(user).model_dump(),
        roles=[RoleResponse.model_validate(r) for r in roles],
    )


def _user_service(db: AsyncSession) -> UserService:
    return UserService(db, get_config().security.password_min_length)


@user_router.get(
    "",
    response_model=List[UserWithRolesResponse],
    dependencies=[Depends(require_permission(Module.USERS, Action.VIEW))],
    summary="List users with their roles",
    description="""
    **Database Impact:** one query for users, one for all user/role edges.
    """,
)
async def list_users(db: AsyncSession = Depends(get_db)):
    items = await _user_service(db).list_users()
    return [_with_roles(item.user, item.roles) for item in items]


@user_router.get(
    "/{user_id}",
    response_model=UserWithRolesResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.VIEW))],
    responses={404: {"description": "User not found"}},
)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    user = await _user_service(db).get_user(user_id)
    return _with_roles(user, await resolver.get_user_roles(user_id))


@user_router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Module.USERS, Action.CREATE))],
    responses={409: {"description": "Username or email already taken"}},
)
async def create_user(
    payload: UserCreate,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    user = await _user_service(db).create_user(payload)
    audited = await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.CREATE,
            resource="users",
            resource_id=user.user_id,
            details={"username": user.username},
        ),
        result=user,
    )
    return audited.result


@user_router.patch(
    "/{user_id}",
    response_model=UserResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.EDIT))],
)
async def update_user(
    user_id: str,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    user = await _user_service(db).update_user(user_id, payload)
    # Never put the password into the audit row
    changed = sorted(payload.model_dump(exclude_unset=True))
    audited = await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPDATE,
            resource="users",
            resource_id=user_id,
            details={"fields": changed},
        ),
        result=user,
    )
    return audited.result


@user_router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.DELETE))],
    responses={409: {"description": "User still referenced by documents or the audit trail"}},
)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    if user_id == ctx.user_id:
        raise ValidationFailedError("You cannot delete your own account")

    await _user_service(db).delete_user(user_id)
    await audit.commit_and_record(
        db, ctx, AuditEntry(action=AuditAction.DELETE, resource="users", resource_id=user_id), None
    )
    return MessageResponse(message="User deleted")


@user_router.get(
    "/{user_id}/permissions",
    response_model=UserPermissionsResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.VIEW))],
)
async def get_user_permissions(
    user_id: str,
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    roles = await resolver.get_user_roles(user_id)
    permissions = await resolver.get_user_permissions(user_id)
    return UserPermissionsResponse(
        user_id=user_id,
        roles=[RoleResponse.model_validate(r) for r in roles],
        permissions=[PermissionResponse.model_validate(p) for p in permissions],
    )


async def _record_role_change(
    db: AsyncSession,
    ctx: AuditContext,
    audit: AuditService,
    user_id: str,
    details: dict,
) -> None:
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(action=AuditAction.UPDATE, resource="users", resource_id=user_id, details=details),
        None,
    )


@user_router.put(
    "/{user_id}/role",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.EDIT))],
    summary="Replace all of a user's roles with a single role",
)
async def replace_user_role(
    user_id: str,
    payload: UserRoleReplace,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await RoleService(db).replace_user_role(user_id, payload.role_id)
    await _record_role_change(db, ctx, audit, user_id, {"role_id": payload.role_id, "op": "replace"})
    return MessageResponse(message="Role replaced")


@user_router.post(
    "/{user_id}/roles/{role_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.EDIT))],
)
async def assign_role(
    user_id: str,
    role_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await RoleService(db).assign_role_to_user(user_id, role_id)
    await _record_role_change(db, ctx, audit, user_id, {"role_id": role_id, "op": "assign"})
    return MessageResponse(message="Role assigned")


@user_router.delete(
    "/{user_id}/roles/{role_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.EDIT))],
)
async def remove_role(
    user_id: str,
    role_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await RoleService(db).remove_role_from_user(user_id, role_id)
    await _record_role_change(db, ctx, audit, user_id, {"role_id": role_id, "op": "remove"})
    return MessageResponse(message="Role removed")


@user_router.get(
    "/{user_id}/access",
    response_model=UserAccessResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.VIEW))],
)
async def get_user_access(user_id: str, db: AsyncSession = Depends(get_db)):
    umg_ids, service_ids = await OrgStructureService(db).get_user_access(user_id)
    return UserAccessResponse(user_id=user_id, umg_ids=umg_ids, service_ids=service_ids)


@user_router.put(
    "/{user_id}/access",
    response_model=UserAccessResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.EDIT))],
    summary="Replace a user's UMG and service grants",
)
async def set_user_access(
    user_id: str,
    payload: UserAccessUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    umg_ids, service_ids = await OrgStructureService(db).set_user_access(
        user_id, payload.umg_ids, payload.service_ids
    )
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPDATE,
            resource="user_access",
            resource_id=user_id,
            details={"umg_ids": umg_ids, "service_ids": service_ids},
        ),
        None,
    )
    return UserAccessResponse(user_id=user_id, umg_ids=umg_ids, service_ids=service_ids)


@user_router.post(
    "/{user_id}/services/{service_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.EDIT))],
)
async def grant_service_access(
    user_id: str,
    service_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await OrgStructureService(db).grant_service_access(user_id, service_id)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.CREATE,
            resource="user_access",
            resource_id=user_id,
            details={"service_id": service_id},
        ),
        None,
    )
    return MessageResponse(message="Service access granted")


@user_router.delete(
    "/{user_id}/services/{service_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.EDIT))],
)
async def revoke_service_access(
    user_id: str,
    service_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await OrgStructureService(db).revoke_service_access(user_id, service_id)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.DELETE,
            resource="user_access",
            resource_id=user_id,
            details={"service_id": service_id},
        ),
        None,
    )
    return MessageResponse(message="Service access revoked")


@user_router.post(
    "/{user_id}/umg/{umg_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.EDIT))],
)
async def grant_umg_access(
    user_id: str,
    umg_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await OrgStructureService(db).grant_umg_access(user_id, umg_id)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.CREATE,
            resource="user_access",
            resource_id=user_id,
            details={"umg_id": umg_id},
        ),
        None,
    )
    return MessageResponse(message="UMG access granted")


@user_router.delete(
    "/{user_id}/umg/{umg_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.USERS, Action.EDIT))],
)
async def revoke_umg_access(
    user_id: str,
    umg_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await OrgStructureService(db).revoke_umg_access(user_id, umg_id)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.DELETE,
            resource="user_access",
            resource_id=user_id,
            details={"umg_id": umg_id},
        ),
        None,
    )
    return MessageResponse(message="UMG access revoked")


__all__ = ["user_router"]
