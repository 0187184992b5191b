# pipeline_docs/services/v1/document_service.py
from pathlib import Path
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from common import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ResourceInUseError,
    ValidationFailedError,
    logger,
)
from pipeline_docs.db.models import (
    Document,
    DocumentCategory,
    DocumentService as DocumentGrant,
    DocumentVersion,
    PipelineObject,
    Service,
    Umg,
)
from pipeline_docs.db.schemas import (
    CategoryCreate,
    CategoryUpdate,
    DocumentCreate,
    DocumentUpdate,
)
from .access_query_service import AccessQueryService

# Changing any of these means a new file, hence a new version
FILE_FIELDS = ("file_name", "file_path", "file_size", "mime_type")


class DocumentService:
    def __init__(self, db: AsyncSession, access: Optional[AccessQueryService] = None):
        self.db = db
        self.access = access or AccessQueryService(db)

    # ============================================
    # Categories
    # ============================================

    async def list_categories(self) -> list[DocumentCategory]:
        result = await self.db.execute(select(DocumentCategory).order_by(DocumentCategory.name))
        return list(result.scalars().all())

    async def get_category(self, category_id: str) -> DocumentCategory:
        category = await self.db.get(DocumentCategory, category_id)
        if category is None:
            raise NotFoundError("Document category", category_id)
        return category

    async def _ensure_category_code_free(self, code: str, exclude_id: Optional[str] = None) -> None:
        query = select(DocumentCategory.category_id).where(DocumentCategory.code == code)
        if exclude_id:
            query = query.where(DocumentCategory.category_id != exclude_id)
        if await self.db.scalar(query):
            raise ConflictError(f"Category code '{code}' already exists")

    async def create_category(self, data: CategoryCreate) -> DocumentCategory:
        await self._ensure_category_code_free(data.code)
        category = DocumentCategory(**data.model_dump())
        self.db.add(category)
        await self.db.flush()
        return category

    async def update_category(self, category_id: str, data: CategoryUpdate) -> DocumentCategory:
        category = await self.get_category(category_id)
        changes = data.model_dump(exclude_unset=True)
        if "code" in changes and changes["code"] != category.code:
            await self._ensure_category_code_free(changes["code"], exclude_id=category_id)
        for key, value in changes.items():
            setattr(category, key, value)
        await self.db.flush()
        return category

    async def delete_category(self, category_id: str) -> None:
        category = await self.get_category(category_id)
        in_use = await self.db.scalar(
            select(func.count()).select_from(Document).where(Document.category_id == category_id)
        )
        if in_use:
            raise ResourceInUseError("Document category", category_id, {"documents": in_use})
        await self.db.delete(category)
        await self.db.flush()

    # ============================================
    # Documents
    # ============================================

    async def _ensure_references(
        self,
        category_id: Optional[str] = None,
        object_id: Optional[str] = None,
        umg_id: Optional[str] = None,
    ) -> None:
        if category_id is not None:
            await self.get_category(category_id)
        if object_id is not None and await self.db.get(PipelineObject, object_id) is None:
            raise NotFoundError("Object", object_id)
        if umg_id is not None and await self.db.get(Umg, umg_id) is None:
            raise NotFoundError("UMG", umg_id)

    async def get_document(self, document_id: str) -> Document:
        document = await self.db.get(Document, document_id)
        if document is None:
            raise NotFoundError("Document", document_id)
        return document

    async def get_visible_document(self, document_id: str, user_id: str) -> Document:
        document = await self.get_document(document_id)
        if not await self.access.can_user_view_document(user_id, document_id):
            raise PermissionDeniedError("documents", "view")
        return document

    async def list_documents_by_object(self, object_id: str, user_id: str) -> list[Document]:
        if await self.db.get(PipelineObject, object_id) is None:
            raise NotFoundError("Object", object_id)
        return await self.access.list_visible_documents(user_id, object_id=object_id)

    async def create_document(self, data: DocumentCreate, uploaded_by: str) -> Document:
        await self._ensure_references(data.category_id, data.object_id, data.umg_id)

        document = Document(
            name=data.name,
            file_name=data.file_name,
            file_path=data.file_path,
            file_size=data.file_size,
            mime_type=data.mime_type,
            category_id=data.category_id,
            object_id=data.object_id,
            umg_id=data.umg_id,
            tags=list(data.tags),
            extra_metadata=data.metadata,
            text_content=data.text_content,
            uploaded_by=uploaded_by,
        )
        self.db.add(document)
        await self.db.flush()

        for service_id in dict.fromkeys(data.service_ids):
            await self.assign_service_to_document(document.document_id, service_id)

        logger.info(
            "Document created",
            document_id=document.document_id,
            code=document.code,
            grants=len(data.service_ids),
        )
        return document

    async def update_document(
        self,
        document_id: str,
        data: DocumentUpdate,
        updated_by: Optional[str] = None,
    ) -> Document:
        """
        Partial update. Replacing the file archives the previous one as a
        DocumentVersion row and bumps `version`; metadata-only edits do not.
        """
        document = await self.get_document(document_id)
        changes = data.model_dump(exclude_unset=True)
        change_note = changes.pop("change_note", None)

        await self._ensure_references(
            changes.get("category_id"), changes.get("object_id"), changes.get("umg_id")
        )

        file_changed = any(
            field in changes and changes[field] != getattr(document, field)
            for field in FILE_FIELDS
        )
        if file_changed:
            self.db.add(
                DocumentVersion(
                    document_id=document_id,
                    version=document.version,
                    changes=change_note,
                    replaced_by=updated_by or document.uploaded_by,
                    **{field: getattr(document, field) for field in FILE_FIELDS},
                )
            )

        if "metadata" in changes:
            document.extra_metadata = changes.pop("metadata")
        for key, value in changes.items():
            setattr(document, key, value)

        if file_changed:
            document.version += 1
            logger.info("Document file replaced", document_id=document_id, version=document.version)
        await self.db.flush()
        return document

    async def list_document_versions(self, document_id: str) -> list[DocumentVersion]:
        """Archived files of a document, newest first."""
        await self.get_document(document_id)
        result = await self.db.execute(
            select(DocumentVersion)
            .where(DocumentVersion.document_id == document_id)
            .order_by(DocumentVersion.version.desc())
        )
        return list(result.scalars().all())

    async def delete_document(self, document_id: str) -> None:
        document = await self.get_document(document_id)
        await self.db.delete(document)
        await self.db.flush()

    async def assign_service_to_document(
        self,
        document_id: str,
        service_id: str,
        can_view: bool = True,
        can_edit: bool = False,
        can_delete: bool = False,
    ) -> DocumentGrant:
        """Create or overwrite the grant for (document, service)."""
        await self.get_document(document_id)
        if await self.db.get(Service, service_id) is None:
            raise NotFoundError("Service", service_id)

        grant = (
            await self.db.execute(
                select(DocumentGrant).where(
                    DocumentGrant.document_id == document_id,
                    DocumentGrant.service_id == service_id,
                )
            )
        ).scalar_one_or_none()

        if grant is None:
            grant = DocumentGrant(document_id=document_id, service_id=service_id)
            self.db.add(grant)
        grant.can_view = can_view
        grant.can_edit = can_edit
        grant.can_delete = can_delete
        await self.db.flush()
        return grant

    async def list_document_services(self, document_id: str) -> list[DocumentGrant]:
        await self.get_document(document_id)
        result = await self.db.execute(
            select(DocumentGrant).where(DocumentGrant.document_id == document_id)
        )
        return list(result.scalars().all())

    async def resolve_download(self, document_id: str, user_id: str, upload_dir: Path) -> tuple[Document, Path]:
        """
        Visible document and the stored file it points at.

        The stored path is resolved inside `upload_dir`; anything that would
        escape it is rejected.
        """
        document = await self.get_visible_document(document_id, user_id)

        root = upload_dir.resolve()
        candidate = (root / document.file_path.lstrip("/\\")).resolve()
        if not candidate.is_relative_to(root):
            raise ValidationFailedError("Stored file path is outside the upload directory")
        if not candidate.is_file():
            raise NotFoundError("File for document", document_id)

        return document, candidate


__all__ = ["DocumentService", "FILE_FIELDS"]
