# pipeline_docs/api/deps.py
"""Request-level dependencies: principal, capability guards, audit context."""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from common import AuthenticationError, PermissionDeniedError, get_config
from common.security import decode_access_token
from pipeline_docs.db import DbManager, get_db, get_db_manager
from pipeline_docs.db.models import User
from pipeline_docs.services.v1 import (
    Action,
    AuditContext,
    AuditService,
    Module,
    PermissionResolver,
)

# auto_error=False so a missing header is reported as our 401, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> str:
    """
    Principal id from the bearer token. The user must still exist and be
    active. The id is also put on request.state for the request log.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError()

    user_id = decode_access_token(credentials.credentials)
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    request.state.user_id = user_id
    return user_id


def get_permission_resolver(db: AsyncSession = Depends(get_db)) -> PermissionResolver:
    return PermissionResolver(db, get_config().access)


def require_permission(module: Module, action: Action):
    """Route guard: 401 without a valid token, 403 without the capability."""

    async def _guard(
        user_id: str = Depends(get_current_user_id),
        resolver: PermissionResolver = Depends(get_permission_resolver),
    ) -> str:
        if not await resolver.user_has_permission(user_id, module, action):
            raise PermissionDeniedError(module.value, action.value)
        return user_id

    return _guard


def build_audit_context(request: Request, user_id: Optional[str] = None) -> AuditContext:
    return AuditContext(
        user_id=user_id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


async def get_audit_context(
    request: Request,
    user_id: str = Depends(get_current_user_id),
) -> AuditContext:
    return build_audit_context(request, user_id)


def get_audit_service(
    db: AsyncSession = Depends(get_db),
    db_manager: DbManager = Depends(get_db_manager),
) -> AuditService:
    return AuditService(db_manager, db)


__all__ = [
    "bearer_scheme",
    "get_current_user_id",
    "get_permission_resolver",
    "require_permission",
    "build_audit_context",
    "get_audit_context",
    "get_audit_service",
]
