# pipeline_docs/services/v1/role_service.py
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from common import (
    ConflictError,
    NotFoundError,
    ProtectedResourceError,
    ValidationFailedError,
    logger,
)
from pipeline_docs.db.models import Permission, Role, RolePermission, User, UserRole
from .capabilities import validate_capability


@dataclass
class RoleWithPermissions:
    role: Role
    permissions: list[Permission]


class RoleService:
    """
    Roles, permissions and the edges between them and users.

    System roles may be renamed, but their permission set is frozen and they
    cannot be deleted.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # ============================================
    # Lookups
    # ============================================

    async def _get_role(self, role_id: str) -> Role:
        role = await self.db.get(Role, role_id)
        if role is None:
            raise NotFoundError("Role", role_id)
        return role

    async def _get_permission(self, permission_id: str) -> Permission:
        permission = await self.db.get(Permission, permission_id)
        if permission is None:
            raise NotFoundError("Permission", permission_id)
        return permission

    async def _ensure_user(self, user_id: str) -> None:
        if await self.db.get(User, user_id) is None:
            raise NotFoundError("User", user_id)

    async def _role_permission_ids(self, role_id: str) -> set[str]:
        result = await self.db.execute(
            select(RolePermission.permission_id).where(RolePermission.role_id == role_id)
        )
        return set(result.scalars().all())

    async def _ensure_permissions_exist(self, permission_ids: Iterable[str]) -> set[str]:
        requested = set(permission_ids)
        if not requested:
            return requested

        result = await self.db.execute(
            select(Permission.permission_id).where(Permission.permission_id.in_(requested))
        )
        missing = requested - set(result.scalars().all())
        if missing:
            raise ValidationFailedError(
                "Unknown permission ids",
                details={"permission_ids": sorted(missing)},
            )
        return requested

    async def _ensure_name_free(self, name: str, exclude_role_id: Optional[str] = None) -> None:
        query = select(Role.role_id).where(Role.name == name)
        if exclude_role_id:
            query = query.where(Role.role_id != exclude_role_id)
        if await self.db.scalar(query):
            raise ConflictError(f"Role '{name}' already exists")

    @staticmethod
    def _guard_system_role(role: Role, what: str) -> None:
        if role.is_system:
            raise ProtectedResourceError(f"Cannot {what} system role '{role.name}'")

    # ============================================
    # Roles
    # ============================================

    async def list_roles(self) -> list[Role]:
        result = await self.db.execute(select(Role).order_by(Role.name))
        return list(result.scalars().all())

    async def get_role(self, role_id: str) -> RoleWithPermissions:
        role = await self._get_role(role_id)
        result = await self.db.execute(
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.permission_id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.module, Permission.action)
        )
        return RoleWithPermissions(role=role, permissions=list(result.scalars().all()))

    async def create_role(
        self,
        name: str,
        description: Optional[str] = None,
        is_system: bool = False,
        permission_ids: Iterable[str] = (),
    ) -> Role:
        await self._ensure_name_free(name)
        requested = await self._ensure_permissions_exist(permission_ids)

        role = Role(name=name, description=description, is_system=is_system)
        self.db.add(role)
        await self.db.flush()

        for permission_id in requested:
            self.db.add(RolePermission(role_id=role.role_id, permission_id=permission_id))
        await self.db.flush()

        logger.info("Role created", role_id=role.role_id, permissions=len(requested))
        return role

    async def update_role(
        self,
        role_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        permission_ids: Optional[Iterable[str]] = None,
    ) -> Role:
        """
        Rename/redescribe a role and, when `permission_ids` is given, replace
        its permission set by diffing current against requested.
        """
        role = await self._get_role(role_id)

        if name is not None and name != role.name:
            await self._ensure_name_free(name, exclude_role_id=role_id)
            role.name = name
        if description is not None:
            role.description = description

        if permission_ids is not None:
            requested = await self._ensure_permissions_exist(permission_ids)
            current = await self._role_permission_ids(role_id)
            to_add = requested - current
            to_remove = current - requested

            if to_add or to_remove:
                self._guard_system_role(role, "change permissions of")

            if to_remove:
                await self.db.execute(
                    delete(RolePermission).where(
                        RolePermission.role_id == role_id,
                        RolePermission.permission_id.in_(to_remove),
                    )
                )
            for permission_id in to_add:
                self.db.add(RolePermission(role_id=role_id, permission_id=permission_id))

            logger.debug(
                "Role permissions diffed",
                role_id=role_id,
                added=len(to_add),
                removed=len(to_remove),
            )

        await self.db.flush()
        return role

    async def delete_role(self, role_id: str) -> None:
        role = await self._get_role(role_id)
        self._guard_system_role(role, "delete")
        await self.db.delete(role)
        await self.db.flush()

    # ============================================
    # Permissions
    # ============================================

    async def list_permissions(self) -> list[Permission]:
        result = await self.db.execute(
            select(Permission).order_by(Permission.module, Permission.action)
        )
        return list(result.scalars().all())

    async def create_permission(
        self,
        module: str,
        action: str,
        description: Optional[str] = None,
    ) -> Permission:
        module_key, action_key = validate_capability(module, action)

        existing = await self.db.scalar(
            select(Permission.permission_id).where(
                Permission.module == module_key.value,
                Permission.action == action_key.value,
            )
        )
        if existing:
            raise ConflictError(f"Permission {module}:{action} already exists")

        permission = Permission(
            module=module_key.value,
            action=action_key.value,
            description=description,
        )
        self.db.add(permission)
        await self.db.flush()
        return permission

    async def assign_permission_to_role(self, role_id: str, permission_id: str) -> None:
        role = await self._get_role(role_id)
        await self._get_permission(permission_id)
        if permission_id in await self._role_permission_ids(role_id):
            return

        self._guard_system_role(role, "change permissions of")
        self.db.add(RolePermission(role_id=role_id, permission_id=permission_id))
        await self.db.flush()

    async def remove_permission_from_role(self, role_id: str, permission_id: str) -> None:
        role = await self._get_role(role_id)
        self._guard_system_role(role, "change permissions of")
        await self.db.execute(
            delete(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
        )

    # ============================================
    # User <-> role
    # ============================================

    async def assign_role_to_user(self, user_id: str, role_id: str) -> None:
        await self._ensure_user(user_id)
        await self._get_role(role_id)

        existing = await self.db.scalar(
            select(UserRole.user_role_id).where(
                UserRole.user_id == user_id, UserRole.role_id == role_id
            )
        )
        if existing:
            return

        self.db.add(UserRole(user_id=user_id, role_id=role_id))
        await self.db.flush()

    async def remove_role_from_user(self, user_id: str, role_id: str) -> None:
        await self.db.execute(
            delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        )

    async def replace_user_role(self, user_id: str, role_id: str) -> None:
        """Drop every role the user holds, then assign exactly one."""
        await self._ensure_user(user_id)
        await self._get_role(role_id)

        await self.db.execute(delete(UserRole).where(UserRole.user_id == user_id))
        self.db.add(UserRole(user_id=user_id, role_id=role_id))
        await self.db.flush()


__all__ = ["RoleService", "RoleWithPermissions"]
