# pipeline_docs/db/models/access_grant_tables.py
"""Explicit user -> org unit visibility grants, independent of roles."""
from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel


class UserServiceAccess(DbBaseModel):
    __tablename__ = "user_service_access"
    __table_args__ = (
        UniqueConstraint("user_id", "service_id", name="uq_user_service_access_pair"),
    )

    access_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.service_id"),
        nullable=False,
        index=True,
    )


class UserUmgAccess(DbBaseModel):
    __tablename__ = "user_umg_access"
    __table_args__ = (
        UniqueConstraint("user_id", "umg_id", name="uq_user_umg_access_pair"),
    )

    access_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    umg_id: Mapped[str] = mapped_column(
        ForeignKey("umg.umg_id"),
        nullable=False,
        index=True,
    )


__all__ = ["UserServiceAccess", "UserUmgAccess"]
