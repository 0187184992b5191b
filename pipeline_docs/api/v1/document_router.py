# pipeline_docs/api/v1/document_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from common import get_config
from pipeline_docs.api.deps import get_audit_context, get_audit_service, require_permission
from pipeline_docs.db import get_db
from pipeline_docs.db.models import AuditAction
from pipeline_docs.db.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    DocumentCreate,
    DocumentGrant,
    DocumentGrantResponse,
    DocumentResponse,
    DocumentUpdate,
    DocumentVersionResponse,
    MessageResponse,
)
from pipeline_docs.services.v1 import (
    AccessQueryService,
    Action,
    AuditContext,
    AuditEntry,
    AuditService,
    DocumentService,
    Module,
    PermissionResolver,
)

document_router = APIRouter(tags=["Documents"])


def _document_service(db: AsyncSession) -> DocumentService:
    resolver = PermissionResolver(db, get_config().access)
    return DocumentService(db, AccessQueryService(db, resolver))


# ============================================
# Categories
# ============================================


@document_router.get(
    "/document-categories",
    response_model=List[CategoryResponse],
    dependencies=[Depends(require_permission(Module.DOCUMENTS, Action.VIEW))],
)
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await _document_service(db).list_categories()


@document_router.post(
    "/document-categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(Module.DOCUMENTS, Action.EDIT))],
)
async def create_category(payload: CategoryCreate, db: AsyncSession = Depends(get_db)):
    return await _document_service(db).create_category(payload)


@document_router.patch(
    "/document-categories/{category_id}",
    response_model=CategoryResponse,
    dependencies=[Depends(require_permission(Module.DOCUMENTS, Action.EDIT))],
)
async def update_category(
    category_id: str, payload: CategoryUpdate, db: AsyncSession = Depends(get_db)
):
    return await _document_service(db).update_category(category_id, payload)


@document_router.delete(
    "/document-categories/{category_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.DOCUMENTS, Action.DELETE))],
    responses={409: {"description": "Category still used by documents"}},
)
async def delete_category(category_id: str, db: AsyncSession = Depends(get_db)):
    await _document_service(db).delete_category(category_id)
    return MessageResponse(message="Category deleted")


# ============================================
# Documents
# ============================================


@document_router.get(
    "/documents",
    response_model=List[DocumentResponse],
    summary="Documents visible to the caller",
    description="""
    Visibility: a document is listed when one of the caller's scoped services
    holds a `can_view` grant on it. Each document appears once.
    """,
)
async def list_documents(
    object_id: Optional[str] = None,
    user_id: str = Depends(require_permission(Module.DOCUMENTS, Action.VIEW)),
    db: AsyncSession = Depends(get_db),
):
    return await _document_service(db).access.list_visible_documents(user_id, object_id)


@document_router.get(
    "/documents/{document_id}",
    response_model=DocumentResponse,
    responses={
        403: {"description": "Document not visible to the caller"},
        404: {"description": "Document not found"},
    },
)
async def get_document(
    document_id: str,
    user_id: str = Depends(require_permission(Module.DOCUMENTS, Action.VIEW)),
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    document = await _document_service(db).get_visible_document(document_id, user_id)
    await audit.record(
        ctx, AuditEntry(action=AuditAction.READ, resource="documents", resource_id=document_id)
    )
    return document


@document_router.post(
    "/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a stored document",
    description="""
    Registers metadata for a file already placed in storage and grants view
    access to `service_ids`. The uploader is the caller.
    """,
)
async def create_document(
    payload: DocumentCreate,
    user_id: str = Depends(require_permission(Module.DOCUMENTS, Action.UPLOAD)),
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    document = await _document_service(db).create_document(payload, uploaded_by=user_id)
    audited = await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPLOAD,
            resource="documents",
            resource_id=document.document_id,
            details={"code": document.code, "file_name": document.file_name},
        ),
        document,
    )
    return audited.result


@document_router.patch(
    "/documents/{document_id}",
    response_model=DocumentResponse,
)
async def update_document(
    document_id: str,
    payload: DocumentUpdate,
    user_id: str = Depends(require_permission(Module.DOCUMENTS, Action.EDIT)),
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    document = await _document_service(db).update_document(document_id, payload, updated_by=user_id)
    audited = await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPDATE,
            resource="documents",
            resource_id=document_id,
            details={
                "fields": sorted(payload.model_dump(exclude_unset=True)),
                "version": document.version,
            },
        ),
        document,
    )
    return audited.result


@document_router.delete(
    "/documents/{document_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_permission(Module.DOCUMENTS, Action.DELETE))],
)
async def delete_document(
    document_id: str,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    await _document_service(db).delete_document(document_id)
    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(action=AuditAction.DELETE, resource="documents", resource_id=document_id),
        None,
    )
    return MessageResponse(message="Document deleted")


@document_router.get(
    "/documents/{document_id}/versions",
    response_model=List[DocumentVersionResponse],
    responses={403: {"description": "Document not visible to the caller"}},
    summary="Files a document used to point at, newest first",
)
async def list_document_versions(
    document_id: str,
    user_id: str = Depends(require_permission(Module.DOCUMENTS, Action.VIEW)),
    db: AsyncSession = Depends(get_db),
):
    documents = _document_service(db)
    await documents.get_visible_document(document_id, user_id)
    return await documents.list_document_versions(document_id)


@document_router.get(
    "/documents/{document_id}/download",
    response_class=FileResponse,
    responses={
        403: {"description": "Document not visible to the caller"},
        404: {"description": "Document or stored file not found"},
    },
)
async def download_document(
    document_id: str,
    user_id: str = Depends(require_permission(Module.DOCUMENTS, Action.VIEW)),
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    document, path = await _document_service(db).resolve_download(
        document_id, user_id, get_config().storage.upload_dir
    )
    await audit.record(
        ctx,
        AuditEntry(
            action=AuditAction.DOWNLOAD,
            resource="documents",
            resource_id=document_id,
            details={"file_name": document.file_name},
        ),
    )
    # FileResponse emits filename*=utf-8'' for non-ASCII names
    return FileResponse(path, media_type=document.mime_type, filename=document.file_name)


@document_router.get(
    "/documents/{document_id}/services",
    response_model=List[DocumentGrantResponse],
    dependencies=[Depends(require_permission(Module.DOCUMENTS, Action.VIEW))],
)
async def list_document_services(document_id: str, db: AsyncSession = Depends(get_db)):
    return await _document_service(db).list_document_services(document_id)


@document_router.post(
    "/documents/{document_id}/services/{service_id}",
    response_model=DocumentGrantResponse,
    dependencies=[Depends(require_permission(Module.DOCUMENTS, Action.EDIT))],
    summary="Create or overwrite a service's grant on a document",
)
async def assign_document_service(
    document_id: str,
    service_id: str,
    payload: Optional[DocumentGrant] = None,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    grant_flags = payload or DocumentGrant()
    grant = await _document_service(db).assign_service_to_document(
        document_id, service_id, **grant_flags.model_dump()
    )
    audited = await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPDATE,
            resource="document_access",
            resource_id=document_id,
            details={"service_id": service_id, **grant_flags.model_dump()},
        ),
        grant,
    )
    return audited.result


__all__ = ["document_router"]
