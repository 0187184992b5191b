# pipeline_docs/services/v1/user_service.py
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from common import (
    ConflictError,
    NotFoundError,
    ResourceInUseError,
    ValidationFailedError,
    logger,
)
from common.security import get_password_hash, verify_password
from pipeline_docs.db.models import AuditLog, Document, DocumentVersion, Role, User, UserRole
from pipeline_docs.db.schemas import UserCreate, UserUpdate


@dataclass(frozen=True)
class AuthResult:
    """Login outcome; `reason` feeds the audit row on failure."""

    user: Optional[User] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.user is not None


@dataclass
class UserWithRoles:
    user: User
    roles: list[Role]


class UserService:
    def __init__(self, db: AsyncSession, password_min_length: int = 6):
        self.db = db
        self.password_min_length = password_min_length

    def _check_password_policy(self, password: str) -> None:
        if len(password) < self.password_min_length:
            raise ValidationFailedError(
                f"Password must be at least {self.password_min_length} characters"
            )

    async def _ensure_unique(
        self,
        username: Optional[str],
        email: Optional[str],
        exclude_user_id: Optional[str] = None,
    ) -> None:
        if username is not None:
            query = select(User.user_id).where(User.username == username)
            if exclude_user_id:
                query = query.where(User.user_id != exclude_user_id)
            if await self.db.scalar(query):
                raise ConflictError(f"Username '{username}' is already taken")

        if email is not None:
            query = select(User.user_id).where(User.email == email)
            if exclude_user_id:
                query = query.where(User.user_id != exclude_user_id)
            if await self.db.scalar(query):
                raise ConflictError(f"Email '{email}' is already registered")

    async def get_user(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    async def get_user_by_username(self, username: str) -> Optional[User]:
        query = (
            select(User)
            .where(User.username == username)
            .execution_options(logging_token="UserService.get_user_by_username")
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list_users(self) -> list[UserWithRoles]:
        users = (await self.db.execute(select(User).order_by(User.username))).scalars().all()

        # One query for every user's roles instead of one per user
        role_rows = await self.db.execute(
            select(UserRole.user_id, Role)
            .join(Role, Role.role_id == UserRole.role_id)
            .order_by(Role.name)
        )
        roles_by_user: dict[str, list[Role]] = {}
        for user_id, role in role_rows.all():
            roles_by_user.setdefault(user_id, []).append(role)

        return [UserWithRoles(user=u, roles=roles_by_user.get(u.user_id, [])) for u in users]

    async def create_user(self, data: UserCreate) -> User:
        self._check_password_policy(data.password)
        await self._ensure_unique(data.username, data.email)

        user = User(
            username=data.username,
            password_hash=get_password_hash(data.password),
            full_name=data.full_name,
            email=data.email,
            status=data.status,
        )
        self.db.add(user)
        await self.db.flush()

        logger.info("User created", user_id=user.user_id, username=user.username)
        return user

    async def update_user(self, user_id: str, data: UserUpdate) -> User:
        user = await self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True)

        await self._ensure_unique(
            changes.get("username"), changes.get("email"), exclude_user_id=user_id
        )

        password = changes.pop("password", None)
        if password is not None:
            self._check_password_policy(password)
            user.password_hash = get_password_hash(password)

        for key, value in changes.items():
            setattr(user, key, value)

        await self.db.flush()
        return user

    async def delete_user(self, user_id: str) -> None:
        user = await self.get_user(user_id)

        # Audit rows keep their actor; the FK restricts the delete
        counts = {
            "documents": await self.db.scalar(
                select(func.count()).select_from(Document).where(Document.uploaded_by == user_id)
            ),
            "audit_logs": await self.db.scalar(
                select(func.count()).select_from(AuditLog).where(AuditLog.user_id == user_id)
            ),
            "document_versions": await self.db.scalar(
                select(func.count())
                .select_from(DocumentVersion)
                .where(DocumentVersion.replaced_by == user_id)
            ),
        }
        references = {name: count for name, count in counts.items() if count}
        if references:
            raise ResourceInUseError("User", user_id, references)

        await self.db.delete(user)
        await self.db.flush()
        logger.info("User deleted", user_id=user_id)

    async def authenticate(self, username: str, password: str) -> AuthResult:
        user = await self.get_user_by_username(username)
        if user is None:
            return AuthResult(reason="unknown_user")
        if not verify_password(password, user.password_hash):
            return AuthResult(reason="invalid_password")
        if not user.is_active:
            return AuthResult(reason=f"user_{user.status.value}")
        return AuthResult(user=user)

    async def change_password(self, user_id: str, current: str, new: str) -> User:
        user = await self.get_user(user_id)
        if not verify_password(current, user.password_hash):
            raise ValidationFailedError("Current password is incorrect")

        self._check_password_policy(new)
        user.password_hash = get_password_hash(new)
        await self.db.flush()
        return user


__all__ = ["UserService", "AuthResult", "UserWithRoles"]
