# pipeline_docs/api/v1/role_router.py
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from pipeline_docs.api.deps import get_audit_context, get_audit_service, require_permission
from pipeline_docs.db import get_db
from pipeline_docs.db.models import AuditAction
from pipeline_docs.db.schemas import (
    MessageResponse,
    PermissionCreate,
    PermissionResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
    RoleWithPermissionsResponse,
)
from pipeline_docs.services.v1 import (
    Action,
    AuditContext,
    AuditEntry,
    AuditService,
    Module,
    RoleService,
)

role_router = APIRouter(tags=["Roles"])


async def _role_detail(service: RoleService, role_id: str) -> RoleWithPermissionsResponse:
    detail = await service.get_role(role_id)
    return RoleWithPermissionsResponse(
        **RoleResponse.model_validate(detail.role).model_dump(),
        permissions=[PermissionResponse.model_validate(p) for p in detail.permissions],
    )


@role_router.get(
    "/roles",
    response_model=List[RoleResponse],
    dependencies=[Depends(require_permission(Module.ROLES, Action.VIEW))],
)
async def list_roles(db: AsyncSession = Depends(get_db)):
    return await RoleService(db).list_roles()


@role_router.get(
    "/roles/{role_id}",
    response_model=RoleWithPermissionsResponse,
    dependencies=[Depends(require_permission(Module.ROLES, Action.VIEW))],
    responses={404: {"description": "Role not found"}},
)
async def get_role(role_id: str, db: AsyncSession = Depends(get_db)):
    return await _role_detail(RoleService(db), role_id)


@role_router.post(
    "/roles",
    response_model=RoleWithPermissionsResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Module.ROLES, Action.CREATE))],
)
async def create_role(
    payload: RoleCreate,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    service = RoleService(db)
    role = await service.create_role(
        payload.name, payload.description, payload.is_system, payload.permission_ids
    )
    detail = await _role_detail(service, role.role_id)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.CREATE,
            resource="roles",
            resource_id=role.role_id,
            details={"name": role.name, "permissions": len(payload.permission_ids)},
        ),
        detail,
    )
    return detail


@role_router.patch(
    "/roles/{role_id}",
    response_model=RoleWithPermissionsResponse,
    dependencies=[Depends(require_permission(Module.ROLES, Action.EDIT))],
    responses={403: {"description": "Permission change on a system role"}},
)
async def update_role(
    role_id: str,
    payload: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    service = RoleService(db)
    await service.update_role(
        role_id,
        name=payload.name,
        description=payload.description,
        permission_ids=payload.permission_ids,
    )
    detail = await _role_detail(service, role_id)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPDATE,
            resource="roles",
            resource_id=role_id,
            details={"fields": sorted(payload.model_dump(exclude_unset=True))},
        ),
        detail,
    )
    return detail


@role_router.delete(
    "/roles/{role_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.ROLES, Action.DELETE))],
    responses={403: {"description": "System roles cannot be deleted"}},
)
async def delete_role(
    role_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await RoleService(db).delete_role(role_id)
    await audit.commit_and_record(
        db, ctx, AuditEntry(action=AuditAction.DELETE, resource="roles", resource_id=role_id), None
    )
    return MessageResponse(message="Role deleted")


@role_router.post(
    "/roles/{role_id}/permissions/{permission_id}",
    response_model=RoleWithPermissionsResponse,
    dependencies=[Depends(require_permission(Module.ROLES, Action.EDIT))],
)
async def add_role_permission(
    role_id: str,
    permission_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    service = RoleService(db)
    await service.assign_permission_to_role(role_id, permission_id)
    detail = await _role_detail(service, role_id)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPDATE,
            resource="roles",
            resource_id=role_id,
            details={"permission_id": permission_id, "op": "assign"},
        ),
        detail,
    )
    return detail


@role_router.delete(
    "/roles/{role_id}/permissions/{permission_id}",
    response_model=RoleWithPermissionsResponse,
    dependencies=[Depends(require_permission(Module.ROLES, Action.EDIT))],
)
async def remove_role_permission(
    role_id: str,
    permission_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    service = RoleService(db)
    await service.remove_permission_from_role(role_id, permission_id)
    detail = await _role_detail(service, role_id)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPDATE,
            resource="roles",
            resource_id=role_id,
            details={"permission_id": permission_id, "op": "remove"},
        ),
        detail,
    )
    return detail


@role_router.get(
    "/permissions",
    response_model=List[PermissionResponse],
    dependencies=[Depends(require_permission(Module.ROLES, Action.VIEW))],
)
async def list_permissions(db: AsyncSession = Depends(get_db)):
    return await RoleService(db).list_permissions()


@role_router.post(
    "/permissions",
    response_model=PermissionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Module.ROLES, Action.CREATE))],
    responses={400: {"description": "Not a registered capability"}},
)
async def create_permission(
    payload: PermissionCreate,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    permission = await RoleService(db).create_permission(
        payload.module, payload.action, payload.description
    )
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.CREATE,
            resource="permissions",
            resource_id=permission.permission_id,
            details={"capability": f"{permission.module}:{permission.action}"},
        ),
        permission,
    )
    return permission


__all__ = ["role_router"]
