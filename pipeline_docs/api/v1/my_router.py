# pipeline_docs/api/v1/my_router.py
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pipeline_docs.api.deps import get_current_user_id, get_permission_resolver
from pipeline_docs.db import get_db
from pipeline_docs.db.schemas import (
    DocumentGrant,
    DocumentResponse,
    ObjectResponse,
    ScopedDocumentResponse,
    ScopedObjectResponse,
    ServiceResponse,
)
from pipeline_docs.services.v1 import AccessQueryService, PermissionResolver

my_router = APIRouter(
    prefix="/my",
    tags=["My scope"],
)


@my_router.get(
    "/documents",
    response_model=List[ScopedDocumentResponse],
    summary="Documents reachable through the caller's service grants",
    description="""
    One row per (document, granting service). A document granted to two of
    the caller's services appears twice.
    """,
)
async def my_documents(
    user_id: str = Depends(get_current_user_id),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    db: AsyncSession = Depends(get_db),
):
    rows = await AccessQueryService(db, resolver).get_documents_by_user_access(user_id)
    return [
        ScopedDocumentResponse(
            document=DocumentResponse.model_validate(row.document),
            service=ServiceResponse.model_validate(row.service),
            permissions=DocumentGrant(
                can_view=row.grant.can_view,
                can_edit=row.grant.can_edit,
                can_delete=row.grant.can_delete,
            ),
        )
        for row in rows
    ]


@my_router.get("/objects", response_model=List[ScopedObjectResponse])
async def my_objects(
    user_id: str = Depends(get_current_user_id),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    db: AsyncSession = Depends(get_db),
):
    rows = await AccessQueryService(db, resolver).get_objects_by_user_access(user_id)
    return [
        ScopedObjectResponse(
            object=ObjectResponse.model_validate(row.object),
            service=ServiceResponse.model_validate(row.service),
        )
        for row in rows
    ]


__all__ = ["my_router"]
