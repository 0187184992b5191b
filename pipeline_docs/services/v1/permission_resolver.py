# pipeline_docs/services/v1/permission_resolver.py
from typing import Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common import AccessConfig, logger
from pipeline_docs.db.models import (
    Permission,
    Role,
    RolePermission,
    Service,
    Umg,
    UserRole,
    UserServiceAccess,
    UserUmgAccess,
)
from .capabilities import Action, Module, capability_value


class PermissionResolver:
    """
    Answers "what may this principal do, and over which services".

    Everything is read fresh from the database on every call. Unknown users
    and users without roles or grants resolve to empty results; denial is a
    value here, the route layer decides how to report it.
    """

    def __init__(self, db: AsyncSession, access: Optional[AccessConfig] = None):
        self.db = db
        self.access = access or AccessConfig()

    async def get_user_roles(self, user_id: str) -> list[Role]:
        query = (
            select(Role)
            .join(UserRole, UserRole.role_id == Role.role_id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.name)
            .execution_options(logging_token="PermissionResolver.get_user_roles")
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_user_permissions(self, user_id: str) -> list[Permission]:
        roles = await self.get_user_roles(user_id)
        role_ids = [role.role_id for role in roles]

        if not role_ids:
            logger.debug("User has no roles", user_id=user_id)
            return []

        query = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.permission_id)
            .where(RolePermission.role_id.in_(role_ids))
            .distinct()
            .order_by(Permission.module, Permission.action)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def user_has_permission(
        self,
        user_id: str,
        module: Union[Module, str],
        action: Union[Action, str],
    ) -> bool:
        module_value = capability_value(module)
        action_value = capability_value(action)

        permissions = await self.get_user_permissions(user_id)
        return any(
            p.module == module_value and p.action == action_value for p in permissions
        )

    async def get_user_service_access(self, user_id: str) -> list[Service]:
        query = (
            select(Service)
            .join(UserServiceAccess, UserServiceAccess.service_id == Service.service_id)
            .where(UserServiceAccess.user_id == user_id)
            .order_by(Service.name)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_user_umg_access(self, user_id: str) -> list[Umg]:
        query = (
            select(Umg)
            .join(UserUmgAccess, UserUmgAccess.umg_id == Umg.umg_id)
            .where(UserUmgAccess.user_id == user_id)
            .order_by(Umg.name)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_user_scope(self, user_id: str) -> frozenset[str]:
        """
        Service ids whose documents and objects the user may see.

        Direct service grants always count. Services under granted UMGs are
        added only when ACCESS_INCLUDE_UMG_SERVICES is on.
        """
        direct = await self.db.execute(
            select(UserServiceAccess.service_id).where(UserServiceAccess.user_id == user_id)
        )
        scope = set(direct.scalars().all())

        if self.access.include_umg_services:
            umg_ids = (
                await self.db.execute(
                    select(UserUmgAccess.umg_id).where(UserUmgAccess.user_id == user_id)
                )
            ).scalars().all()
            if umg_ids:
                under_umg = await self.db.execute(
                    select(Service.service_id).where(Service.umg_id.in_(umg_ids))
                )
                scope.update(under_umg.scalars().all())

        return frozenset(scope)


__all__ = ["PermissionResolver"]
