# pipeline_docs/db/models/user_table.py
from typing import Optional
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel
from .enums import UserStatus, string_enum


class User(DbBaseModel):
    __tablename__ = "users"

    user_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    full_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(120),
        unique=True,
        nullable=True,
    )

    status: Mapped[UserStatus] = mapped_column(
        string_enum(UserStatus),
        nullable=False,
        default=UserStatus.ACTIVE,
    )

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE


__all__ = ["User"]
