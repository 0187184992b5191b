# pipeline_docs/db/models/pipeline_object_table.py
from typing import Any, Optional
from sqlalchemy import JSON, Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel
from .enums import ObjectStatus, string_enum


def _generate_qr_code() -> str:
    return DbBaseModel.generate_public_code("OBJ")


class PipelineObject(DbBaseModel):
    """Physical asset: pipeline section, compressor station, valve node."""

    __tablename__ = "objects"

    object_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)

    umg_id: Mapped[str] = mapped_column(
        ForeignKey("umg.umg_id"),
        nullable=False,
        index=True,
    )

    status: Mapped[ObjectStatus] = mapped_column(
        string_enum(ObjectStatus),
        nullable=False,
        default=ObjectStatus.ACTIVE,
    )

    qr_code: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        default=_generate_qr_code,
    )

    location: Mapped[Optional[str]] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)

    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )


class ObjectService(DbBaseModel):
    """Object is served by service; scopes object visibility."""

    __tablename__ = "object_services"
    __table_args__ = (
        UniqueConstraint("object_id", "service_id", name="uq_object_services_pair"),
    )

    object_service_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    object_id: Mapped[str] = mapped_column(
        ForeignKey("objects.object_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.service_id"),
        nullable=False,
        index=True,
    )

    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


__all__ = ["PipelineObject", "ObjectService"]
