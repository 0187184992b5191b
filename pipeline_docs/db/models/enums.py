# pipeline_docs/db/models/enums.py
"""Closed value sets stored as strings."""
from enum import Enum
from typing import Type

from sqlalchemy import Enum as SAEnum


class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ObjectStatus(str, Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    INACTIVE = "inactive"


class AuditAction(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    UPLOAD = "upload"
    DOWNLOAD = "download"
    LOGIN = "login"
    LOGOUT = "logout"


def string_enum(enum_cls: Type[Enum], length: int = 20) -> SAEnum:
    """Store enum values (not names) in a VARCHAR, no native DB enum type."""
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


__all__ = ["UserStatus", "ObjectStatus", "AuditAction", "string_enum"]
