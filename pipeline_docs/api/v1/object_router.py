# pipeline_docs/api/v1/object_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pipeline_docs.api.deps import get_audit_context, get_audit_service, require_permission
from pipeline_docs.db import get_db
from pipeline_docs.db.models import AuditAction
from pipeline_docs.db.schemas import (
    DocumentResponse,
    MessageResponse,
    ObjectCreate,
    ObjectResponse,
    ObjectServiceLink,
    ObjectServiceResponse,
    ObjectUpdate,
    ServiceResponse,
)
from pipeline_docs.services.v1 import (
    Action,
    AuditContext,
    AuditEntry,
    AuditService,
    DocumentService,
    Module,
    PipelineObjectService,
)

object_router = APIRouter(
    prefix="/objects",
    tags=["Objects"],
)


@object_router.get(
    "",
    response_model=List[ObjectResponse],
    dependencies=[Depends(require_permission(Module.OBJECTS, Action.VIEW))],
)
async def list_objects(
    umg_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await PipelineObjectService(db).list_objects(umg_id)


@object_router.get(
    "/qr/{qr_code}",
    response_model=ObjectResponse,
    dependencies=[Depends(require_permission(Module.OBJECTS, Action.VIEW))],
    summary="Resolve a scanned QR code to its object",
    responses={404: {"description": "No object carries this QR code"}},
)
async def get_object_by_qr(
    qr_code: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    obj = await PipelineObjectService(db).get_object_by_qr_code(qr_code)
    await audit.record(
        ctx,
        AuditEntry(
            action=AuditAction.READ,
            resource="objects",
            resource_id=obj.object_id,
            details={"via": "qr", "qr_code": qr_code},
        ),
    )
    return obj


@object_router.get(
    "/{object_id}",
    response_model=ObjectResponse,
    dependencies=[Depends(require_permission(Module.OBJECTS, Action.VIEW))],
    responses={404: {"description": "Object not found"}},
)
async def get_object(object_id: str, db: AsyncSession = Depends(get_db)):
    return await PipelineObjectService(db).get_object(object_id)


@object_router.get(
    "/{object_id}/documents",
    response_model=List[DocumentResponse],
    summary="Documents of an object visible to the caller",
)
async def list_object_documents(
    object_id: str,
    user_id: str = Depends(require_permission(Module.DOCUMENTS, Action.VIEW)),
    db: AsyncSession = Depends(get_db),
):
    return await DocumentService(db).list_documents_by_object(object_id, user_id)


@object_router.get(
    "/{object_id}/services",
    response_model=List[ObjectServiceResponse],
    dependencies=[Depends(require_permission(Module.OBJECTS, Action.VIEW))],
)
async def list_object_services(object_id: str, db: AsyncSession = Depends(get_db)):
    links = await PipelineObjectService(db).list_object_services(object_id)
    return [
        ObjectServiceResponse(
            service=ServiceResponse.model_validate(link.service),
            is_primary=link.is_primary,
        )
        for link in links
    ]


@object_router.post(
    "",
    response_model=ObjectResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Module.OBJECTS, Action.CREATE))],
)
async def create_object(
    payload: ObjectCreate,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    obj = await PipelineObjectService(db).create_object(payload)
    audited = await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.CREATE,
            resource="objects",
            resource_id=obj.object_id,
            details={"code": obj.code, "qr_code": obj.qr_code},
        ),
        obj,
    )
    return audited.result


@object_router.patch(
    "/{object_id}",
    response_model=ObjectResponse,
    dependencies=[Depends(require_permission(Module.OBJECTS, Action.EDIT))],
)
async def update_object(
    object_id: str,
    payload: ObjectUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    obj = await PipelineObjectService(db).update_object(object_id, payload)
    audited = await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPDATE,
            resource="objects",
            resource_id=object_id,
            details={"fields": sorted(payload.model_dump(exclude_unset=True))},
        ),
        obj,
    )
    return audited.result


@object_router.delete(
    "/{object_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.OBJECTS, Action.DELETE))],
)
async def delete_object(
    object_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await PipelineObjectService(db).delete_object(object_id)
    await audit.commit_and_record(
        db, ctx, AuditEntry(action=AuditAction.DELETE, resource="objects", resource_id=object_id), None
    )
    return MessageResponse(message="Object deleted")


@object_router.post(
    "/{object_id}/services/{service_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.OBJECTS, Action.EDIT))],
)
async def assign_object_service(
    object_id: str,
    service_id: str,
    payload: Optional[ObjectServiceLink] = None,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    link = payload or ObjectServiceLink()
    await PipelineObjectService(db).assign_service(object_id, service_id, link.is_primary)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPDATE,
            resource="object_access",
            resource_id=object_id,
            details={"service_id": service_id, "is_primary": link.is_primary},
        ),
        None,
    )
    return MessageResponse(message="Service linked")


@object_router.delete(
    "/{object_id}/services/{service_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.OBJECTS, Action.EDIT))],
)
async def remove_object_service(
    object_id: str,
    service_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await PipelineObjectService(db).remove_service(object_id, service_id)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.DELETE,
            resource="object_access",
            resource_id=object_id,
            details={"service_id": service_id},
        ),
        None,
    )
    return MessageResponse(message="Service unlinked")


__all__ = ["object_router"]
