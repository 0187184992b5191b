# pipeline_docs/db/models/audit_log_table.py
from typing import Any, Optional
from sqlalchemy import JSON, Boolean, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel
from .enums import AuditAction, string_enum


class AuditLog(DbBaseModel):
    """Append-only. Nothing in the application updates or deletes rows."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_created_at", "created_at"),
        Index("ix_audit_logs_resource", "resource", "resource_id"),
    )

    audit_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    # Null for unauthenticated failures (e.g. login with an unknown username)
    user_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("users.user_id"),
        nullable=True,
        index=True,
    )

    action: Mapped[AuditAction] = mapped_column(string_enum(AuditAction), nullable=False)
    resource: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


__all__ = ["AuditLog"]
