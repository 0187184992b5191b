# pipeline_docs/services/v1/access_query_service.py
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import ColumnElement, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from pipeline_docs.db.models import (
    Document,
    DocumentService,
    ObjectService,
    PipelineObject,
    Service,
)
from .permission_resolver import PermissionResolver


def document_visible_clause(scope: Iterable[str]) -> ColumnElement[bool]:
    """
    True for documents holding a can_view grant from a service in `scope`.

    Written as EXISTS so a document granted to several scoped services still
    yields a single row. Every document visibility check goes through here.
    """
    return exists().where(
        DocumentService.document_id == Document.document_id,
        DocumentService.service_id.in_(list(scope)),
        DocumentService.can_view.is_(True),
    )


def _grant_in_scope(scope: Iterable[str]) -> tuple[ColumnElement[bool], ...]:
    return (
        DocumentService.service_id.in_(list(scope)),
        DocumentService.can_view.is_(True),
    )


@dataclass
class ScopedDocument:
    document: Document
    service: Service
    grant: DocumentService


@dataclass
class ScopedObject:
    object: PipelineObject
    service: Service


class AccessQueryService:
    """Document and object listings restricted to the caller's service scope."""

    def __init__(self, db: AsyncSession, resolver: Optional[PermissionResolver] = None):
        self.db = db
        self.resolver = resolver or PermissionResolver(db)

    async def get_documents_by_user_access(self, user_id: str) -> list[ScopedDocument]:
        scope = await self.resolver.get_user_scope(user_id)
        if not scope:
            return []

        query = (
            select(Document, Service, DocumentService)
            .join(DocumentService, DocumentService.document_id == Document.document_id)
            .join(Service, Service.service_id == DocumentService.service_id)
            .where(*_grant_in_scope(scope))
            .order_by(Document.created_at.desc(), Service.name)
            .execution_options(logging_token="AccessQueryService.get_documents_by_user_access")
        )
        result = await self.db.execute(query)
        return [ScopedDocument(document=d, service=s, grant=g) for d, s, g in result.all()]

    async def get_objects_by_user_access(self, user_id: str) -> list[ScopedObject]:
        scope = await self.resolver.get_user_scope(user_id)
        if not scope:
            return []

        query = (
            select(PipelineObject, Service)
            .join(ObjectService, ObjectService.object_id == PipelineObject.object_id)
            .join(Service, Service.service_id == ObjectService.service_id)
            .where(ObjectService.service_id.in_(list(scope)))
            .order_by(PipelineObject.name, Service.name)
        )
        result = await self.db.execute(query)
        return [ScopedObject(object=o, service=s) for o, s in result.all()]

    async def list_visible_documents(
        self,
        user_id: str,
        object_id: Optional[str] = None,
    ) -> list[Document]:
        """Distinct visible documents, optionally narrowed to one object."""
        scope = await self.resolver.get_user_scope(user_id)
        if not scope:
            return []

        query = select(Document).where(document_visible_clause(scope))
        if object_id is not None:
            query = query.where(Document.object_id == object_id)

        result = await self.db.execute(query.order_by(Document.created_at.desc()))
        return list(result.scalars().all())

    async def can_user_view_document(self, user_id: str, document_id: str) -> bool:
        scope = await self.resolver.get_user_scope(user_id)
        if not scope:
            return False

        query = select(
            exists().where(
                DocumentService.document_id == document_id,
                *_grant_in_scope(scope),
            )
        )
        return bool(await self.db.scalar(query))


__all__ = [
    "AccessQueryService",
    "ScopedDocument",
    "ScopedObject",
    "document_visible_clause",
]
