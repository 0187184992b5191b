# pipeline_docs/api/v1/auth_router.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from common import AuthenticationError, get_config
from common.security import create_access_token
from pipeline_docs.api.deps import (
    build_audit_context,
    get_audit_context,
    get_audit_service,
    get_current_user_id,
    get_permission_resolver,
)
from pipeline_docs.db import get_db
from pipeline_docs.db.models import AuditAction
from pipeline_docs.db.schemas import (
    CurrentUserResponse,
    LoginRequest,
    MessageResponse,
    PasswordChangeRequest,
    PermissionResponse,
    RoleResponse,
    TokenResponse,
    UserResponse,
)
from pipeline_docs.services.v1 import (
    AuditContext,
    AuditEntry,
    AuditService,
    PermissionResolver,
    UserService,
)

auth_router = APIRouter(tags=["Auth"])


@auth_router.post(
    "/auth/login",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Exchange username and password for a bearer token",
    description="""
    Only active users can log in. Every attempt, successful or not, is
    written to the audit trail under resource `auth`.
    """,
    responses={401: {"description": "Invalid credentials or inactive user"}},
)
async def login(
    payload: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
):
    security = get_config().security
    result = await UserService(db).authenticate(payload.username, payload.password)

    if not result.ok:
        await audit.record(
            build_audit_context(request),
            AuditEntry(
                action=AuditAction.LOGIN,
                resource="auth",
                details={"username": payload.username, "reason": result.reason},
                success=False,
            ),
        )
        raise AuthenticationError("Invalid username or password")

    user = result.user
    token = create_access_token(user.user_id, config=security)
    await audit.record(
        build_audit_context(request, user.user_id),
        AuditEntry(action=AuditAction.LOGIN, resource="auth", resource_id=user.user_id),
    )

    return TokenResponse(
        access_token=token,
        expires_in=security.access_token_expire_hours * 3600,
        user=UserResponse.model_validate(user),
    )


@auth_router.post("/auth/logout", response_model=MessageResponse)
async def logout(
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    # Tokens are stateless; logout only leaves a trace in the audit trail
    await audit.record(ctx, AuditEntry(action=AuditAction.LOGOUT, resource="auth", resource_id=ctx.user_id))
    return MessageResponse(message="Logged out")


@auth_router.get("/auth/me", response_model=CurrentUserResponse)
async def me(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    user = await UserService(db).get_user(user_id)
    roles = await resolver.get_user_roles(user_id)
    permissions = await resolver.get_user_permissions(user_id)

    return CurrentUserResponse(
        user=UserResponse.model_validate(user),
        roles=[RoleResponse.model_validate(r) for r in roles],
        permissions=[PermissionResponse.model_validate(p) for p in permissions],
    )


@auth_router.patch(
    "/users/me/password",
    response_model=MessageResponse,
    responses={400: {"description": "Wrong current password or too short"}},
)
async def change_own_password(
    payload: PasswordChangeRequest,
    db: AsyncSession = Depends(get_db),
    ctx: AuditContext = Depends(get_audit_context),
    audit: AuditService = Depends(get_audit_service),
):
    service = UserService(db, get_config().security.password_min_length)
    await service.change_password(ctx.user_id, payload.current_password, payload.new_password)

    await audit.commit_and_record(
        db,
        ctx,
        AuditEntry(
            action=AuditAction.UPDATE,
            resource="users",
            resource_id=ctx.user_id,
            details={"field": "password"},
        ),
        result=None,
    )
    return MessageResponse(message="Password changed")


__all__ = ["auth_router"]
