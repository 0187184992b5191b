# pipeline_docs/db/schemas/auth_schemas.py
from typing import List
from pydantic import BaseModel, Field
from .role_schemas import PermissionResponse, RoleResponse
from .user_schemas import UserResponse


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=128)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    user: UserResponse


class CurrentUserResponse(BaseModel):
    user: UserResponse
    permissions: List[PermissionResponse]
    roles: List[RoleResponse]


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=1, max_length=128)


class MessageResponse(BaseModel):
    success: bool = True
    message: str = ""


__all__ = [
    "LoginRequest",
    "TokenResponse",
    "CurrentUserResponse",
    "PasswordChangeRequest",
    "MessageResponse",
]
