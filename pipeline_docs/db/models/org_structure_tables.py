# pipeline_docs/db/models/org_structure_tables.py
"""UMG -> Service -> Department hierarchy."""
from typing import Optional
from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel


class Umg(DbBaseModel):
    """Top organizational unit (gas trunk-line operating division)."""

    __tablename__ = "umg"

    umg_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    code: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
    )

    description: Mapped[Optional[str]] = mapped_column(Text)


class Service(DbBaseModel):
    """Unit of document and object visibility scoping."""

    __tablename__ = "services"
    __table_args__ = (UniqueConstraint("umg_id", "code", name="uq_services_umg_code"),)

    service_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    umg_id: Mapped[str] = mapped_column(
        ForeignKey("umg.umg_id"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)


class Department(DbBaseModel):
    __tablename__ = "departments"

    department_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.service_id"),
        nullable=False,
        index=True,
    )

    # Same-service, acyclic; enforced by DepartmentTree before every write
    parent_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("departments.department_id"),
        nullable=True,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


__all__ = ["Umg", "Service", "Department"]
