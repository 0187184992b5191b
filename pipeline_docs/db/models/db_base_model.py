# pipeline_docs/db/models/db_base_model.py
import secrets
import string
import time
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

_BASE36_ALPHABET = string.digits + string.ascii_lowercase


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class DbBaseModel(DeclarativeBase):
    __abstract__ = True  # prevents SQLAlchemy from creating a table for this base

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,  # always UTC, evaluated per insert
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )

    @staticmethod
    def generate_uuid() -> str:
        return str(uuid4())

    @staticmethod
    def generate_public_code(prefix: str) -> str:
        """
        Human-facing unique code: <PREFIX>-<epoch ms>-<9 base36 chars>,
        e.g. OBJ-1718000000000-k3j9x0a1b.
        """
        suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(9))
        return f"{prefix}-{int(time.time() * 1000)}-{suffix}"


__all__ = ["DbBaseModel", "utc_now"]
