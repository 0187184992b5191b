# pipeline_docs/db/schemas/user_schemas.py
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pipeline_docs.db.models import UserStatus
from .role_schemas import RoleResponse, PermissionResponse

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[\w.\-]+$")
    full_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    status: UserStatus = UserStatus.ACTIVE


class UserCreate(UserBase):
    # Length policy is configurable, enforced by UserService
    password: str = Field(..., min_length=1, max_length=128)


class UserUpdate(BaseModel):
    # All fields optional for partial update
    username: Optional[str] = Field(None, min_length=3, max_length=50, pattern=r"^[\w.\-]+$")
    full_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255, pattern=EMAIL_PATTERN)
    status: Optional[UserStatus] = None
    password: Optional[str] = Field(None, min_length=1, max_length=128)


class UserResponse(UserBase):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    created_at: datetime
    updated_at: datetime


class UserWithRolesResponse(UserResponse):
    roles: List[RoleResponse] = Field(default_factory=list)


class UserPermissionsResponse(BaseModel):
    user_id: str
    roles: List[RoleResponse]
    permissions: List[PermissionResponse]


class UserRoleReplace(BaseModel):
    role_id: str = Field(..., min_length=1, max_length=36)


class UserAccessUpdate(BaseModel):
    """Full replacement of a user's UMG and service grants."""

    umg_ids: List[str] = Field(default_factory=list)
    service_ids: List[str] = Field(default_factory=list)


class UserAccessResponse(BaseModel):
    user_id: str
    umg_ids: List[str]
    service_ids: List[str]


__all__ = [
    "UserCreate",
    "UserUpdate",
    "UserResponse",
    "UserWithRolesResponse",
    "UserPermissionsResponse",
    "UserRoleReplace",
    "UserAccessUpdate",
    "UserAccessResponse",
]
