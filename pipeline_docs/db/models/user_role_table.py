# pipeline_docs/db/models/user_role_table.py
from sqlalchemy import String, ForeignKey, UniqueConstraint
from .db_base_model import DbBaseModel
from sqlalchemy.orm import Mapped, mapped_column


class UserRole(DbBaseModel):
    """User holds role. A user may hold zero, one or many roles."""

    __tablename__ = "user_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_roles_pair"),
    )

    user_role_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    role_id: Mapped[str] = mapped_column(
        ForeignKey("roles.role_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


__all__ = ["UserRole"]
