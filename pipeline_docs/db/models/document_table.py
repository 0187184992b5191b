# pipeline_docs/db/models/document_table.py
from typing import Any, Optional
from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, TSVECTOR
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel

# text[] on PostgreSQL, a JSON list elsewhere
TagList = ARRAY(Text).with_variant(JSON(), "sqlite")

# Maintained by the documents_search_vector trigger (see alembic)
SearchVector = TSVECTOR().with_variant(Text(), "sqlite")


def _generate_document_code() -> str:
    return DbBaseModel.generate_public_code("DOC")


class DocumentCategory(DbBaseModel):
    __tablename__ = "document_categories"

    category_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)


class Document(DbBaseModel):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_search_vector", "search_vector", postgresql_using="gin"),
        Index(
            "ix_documents_name_trgm",
            "name",
            postgresql_using="gin",
            postgresql_ops={"name": "gin_trgm_ops"},
        ),
        Index("ix_documents_tags", "tags", postgresql_using="gin"),
        Index("ix_documents_created_at", "created_at"),
    )

    document_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    code: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        default=_generate_document_code,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Stored file
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    mime_type: Mapped[str] = mapped_column(String(150), nullable=False)

    category_id: Mapped[str] = mapped_column(
        ForeignKey("document_categories.category_id"),
        nullable=False,
        index=True,
    )

    object_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("objects.object_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    umg_id: Mapped[str] = mapped_column(
        ForeignKey("umg.umg_id"),
        nullable=False,
        index=True,
    )

    tags: Mapped[list[str]] = mapped_column(TagList, nullable=False, default=list)

    extra_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )

    uploaded_by: Mapped[str] = mapped_column(
        ForeignKey("users.user_id"),
        nullable=False,
        index=True,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Extracted text used for full-text search and highlighting
    text_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    search_vector: Mapped[Optional[str]] = mapped_column(
        SearchVector,
        nullable=True,
        deferred=True,
    )


class DocumentService(DbBaseModel):
    """
    Per-service grant on a document. A document is visible to a user iff one
    of the user's scoped services holds a row here with can_view = true.
    """

    __tablename__ = "document_services"
    __table_args__ = (
        UniqueConstraint("document_id", "service_id", name="uq_document_services_pair"),
        Index("ix_document_services_service_view", "service_id", "can_view"),
    )

    document_service_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    document_id: Mapped[str] = mapped_column(
        ForeignKey("documents.document_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.service_id"),
        nullable=False,
    )

    can_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Informational only: edit and delete are gated by role capability
    can_edit: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_delete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


__all__ = ["DocumentCategory", "Document", "DocumentService"]
