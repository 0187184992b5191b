# pipeline_docs/services/v1/org_structure_service.py
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from common import ConflictError, NotFoundError, ResourceInUseError, logger
from pipeline_docs.db.models import (
    Department,
    Document,
    DocumentService,
    ObjectService,
    PipelineObject,
    Service,
    Umg,
    User,
    UserServiceAccess,
    UserUmgAccess,
)
from pipeline_docs.db.schemas import (
    DepartmentCreate,
    DepartmentUpdate,
    ServiceCreate,
    ServiceUpdate,
    UmgCreate,
    UmgUpdate,
)
from .department_tree import DepartmentTree


class OrgStructureService:
    """
    UMGs, their services and each service's department tree, plus the user
    access grants that define visibility scope.

    Deletes are pre-validated: a row that is still referenced is refused with
    ResourceInUseError listing what blocks it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, model: Any, *where: Any) -> int:
        return int(await self.db.scalar(select(func.count()).select_from(model).where(*where)) or 0)

    @staticmethod
    def _raise_if_referenced(resource: str, resource_id: str, references: dict[str, int]) -> None:
        blocking = {kind: count for kind, count in references.items() if count}
        if blocking:
            raise ResourceInUseError(resource, resource_id, blocking)

    # ============================================
    # UMG
    # ============================================

    async def list_umgs(self) -> list[Umg]:
        result = await self.db.execute(select(Umg).order_by(Umg.name))
        return list(result.scalars().all())

    async def get_umg(self, umg_id: str) -> Umg:
        umg = await self.db.get(Umg, umg_id)
        if umg is None:
            raise NotFoundError("UMG", umg_id)
        return umg

    async def _ensure_umg_code_free(self, code: str, exclude_id: Optional[str] = None) -> None:
        query = select(Umg.umg_id).where(Umg.code == code)
        if exclude_id:
            query = query.where(Umg.umg_id != exclude_id)
        if await self.db.scalar(query):
            raise ConflictError(f"UMG code '{code}' already exists")

    async def create_umg(self, data: UmgCreate) -> Umg:
        await self._ensure_umg_code_free(data.code)
        umg = Umg(**data.model_dump())
        self.db.add(umg)
        await self.db.flush()
        return umg

    async def update_umg(self, umg_id: str, data: UmgUpdate) -> Umg:
        umg = await self.get_umg(umg_id)
        changes = data.model_dump(exclude_unset=True)
        if "code" in changes and changes["code"] != umg.code:
            await self._ensure_umg_code_free(changes["code"], exclude_id=umg_id)
        for key, value in changes.items():
            setattr(umg, key, value)
        await self.db.flush()
        return umg

    async def delete_umg(self, umg_id: str) -> None:
        umg = await self.get_umg(umg_id)
        self._raise_if_referenced(
            "UMG",
            umg_id,
            {
                "services": await self._count(Service, Service.umg_id == umg_id),
                "objects": await self._count(PipelineObject, PipelineObject.umg_id == umg_id),
                "documents": await self._count(Document, Document.umg_id == umg_id),
                "user_grants": await self._count(UserUmgAccess, UserUmgAccess.umg_id == umg_id),
            },
        )
        await self.db.delete(umg)
        await self.db.flush()

    # ============================================
    # Services
    # ============================================

    async def list_services(self, umg_id: Optional[str] = None) -> list[Service]:
        query = select(Service).order_by(Service.name)
        if umg_id is not None:
            query = query.where(Service.umg_id == umg_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_service(self, service_id: str) -> Service:
        service = await self.db.get(Service, service_id)
        if service is None:
            raise NotFoundError("Service", service_id)
        return service

    async def _ensure_service_code_free(
        self, umg_id: str, code: str, exclude_id: Optional[str] = None
    ) -> None:
        query = select(Service.service_id).where(Service.umg_id == umg_id, Service.code == code)
        if exclude_id:
            query = query.where(Service.service_id != exclude_id)
        if await self.db.scalar(query):
            raise ConflictError(f"Service code '{code}' already exists in this UMG")

    async def create_service(self, data: ServiceCreate) -> Service:
        await self.get_umg(data.umg_id)
        await self._ensure_service_code_free(data.umg_id, data.code)
        service = Service(**data.model_dump())
        self.db.add(service)
        await self.db.flush()
        return service

    async def update_service(self, service_id: str, data: ServiceUpdate) -> Service:
        service = await self.get_service(service_id)
        changes = data.model_dump(exclude_unset=True)

        umg_id = changes.get("umg_id", service.umg_id)
        code = changes.get("code", service.code)
        if umg_id != service.umg_id:
            await self.get_umg(umg_id)
        if (umg_id, code) != (service.umg_id, service.code):
            await self._ensure_service_code_free(umg_id, code, exclude_id=service_id)

        for key, value in changes.items():
            setattr(service, key, value)
        await self.db.flush()
        return service

    async def delete_service(self, service_id: str) -> None:
        service = await self.get_service(service_id)
        self._raise_if_referenced(
            "Service",
            service_id,
            {
                "departments": await self._count(Department, Department.service_id == service_id),
                "document_grants": await self._count(
                    DocumentService, DocumentService.service_id == service_id
                ),
                "object_links": await self._count(
                    ObjectService, ObjectService.service_id == service_id
                ),
                "user_grants": await self._count(
                    UserServiceAccess, UserServiceAccess.service_id == service_id
                ),
            },
        )
        await self.db.delete(service)
        await self.db.flush()

    # ============================================
    # Departments
    # ============================================

    async def list_departments(self, service_id: Optional[str] = None) -> list[Department]:
        query = select(Department).order_by(Department.level, Department.name)
        if service_id is not None:
            query = query.where(Department.service_id == service_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_department(self, department_id: str) -> Department:
        department = await self.db.get(Department, department_id)
        if department is None:
            raise NotFoundError("Department", department_id)
        return department

    async def _load_tree(self, service_id: str) -> tuple[DepartmentTree, dict[str, Department]]:
        departments = await self.list_departments(service_id)
        by_id = {d.department_id: d for d in departments}
        return DepartmentTree.from_departments(service_id, departments), by_id

    async def create_department(self, data: DepartmentCreate) -> Department:
        await self.get_service(data.service_id)
        tree, _ = await self._load_tree(data.service_id)

        level = tree.level_for_parent(None, data.parent_id)
        department = Department(**data.model_dump(), level=level)
        self.db.add(department)
        await self.db.flush()
        return department

    async def update_department(self, department_id: str, data: DepartmentUpdate) -> Department:
        """
        Partial update. `parent_id` is applied only when present in the
        payload; re-parenting recomputes the level of the whole subtree.
        A move to another service lands at the root unless a parent in the
        target service is given.
        """
        department = await self.get_department(department_id)
        changes = data.model_dump(exclude_unset=True)

        target_service = changes.pop("service_id", department.service_id)
        moving = target_service != department.service_id
        reparent = "parent_id" in changes
        # The old parent stays behind in the old service
        parent_id = changes.pop("parent_id", None if moving else department.parent_id)

        if moving:
            await self.get_service(target_service)
            # Only leaf departments can move between services
            self._raise_if_referenced(
                "Department",
                department_id,
                {"child_departments": await self._count(
                    Department, Department.parent_id == department_id
                )},
            )
            tree, _ = await self._load_tree(target_service)
            department.level = tree.level_for_parent(None, parent_id)
            department.service_id = target_service
            department.parent_id = parent_id
        elif reparent:
            tree, by_id = await self._load_tree(department.service_id)
            for changed_id, level in tree.attach(department_id, parent_id).items():
                by_id[changed_id].level = level
            department.parent_id = parent_id
            logger.debug("Department re-parented", department_id=department_id, parent_id=parent_id)

        for key, value in changes.items():
            setattr(department, key, value)
        await self.db.flush()
        return department

    async def delete_department(self, department_id: str) -> None:
        department = await self.get_department(department_id)
        self._raise_if_referenced(
            "Department",
            department_id,
            {"child_departments": await self._count(
                Department, Department.parent_id == department_id
            )},
        )
        await self.db.delete(department)
        await self.db.flush()

    # ============================================
    # Access grants
    # ============================================

    async def _ensure_user(self, user_id: str) -> None:
        if await self.db.get(User, user_id) is None:
            raise NotFoundError("User", user_id)

    async def grant_service_access(self, user_id: str, service_id: str) -> None:
        await self._ensure_user(user_id)
        await self.get_service(service_id)
        existing = await self.db.scalar(
            select(UserServiceAccess.access_id).where(
                UserServiceAccess.user_id == user_id,
                UserServiceAccess.service_id == service_id,
            )
        )
        if not existing:
            self.db.add(UserServiceAccess(user_id=user_id, service_id=service_id))
            await self.db.flush()

    async def grant_umg_access(self, user_id: str, umg_id: str) -> None:
        await self._ensure_user(user_id)
        await self.get_umg(umg_id)
        existing = await self.db.scalar(
            select(UserUmgAccess.access_id).where(
                UserUmgAccess.user_id == user_id,
                UserUmgAccess.umg_id == umg_id,
            )
        )
        if not existing:
            self.db.add(UserUmgAccess(user_id=user_id, umg_id=umg_id))
            await self.db.flush()

    async def revoke_service_access(self, user_id: str, service_id: str) -> None:
        await self.db.execute(
            delete(UserServiceAccess).where(
                UserServiceAccess.user_id == user_id,
                UserServiceAccess.service_id == service_id,
            )
        )

    async def revoke_umg_access(self, user_id: str, umg_id: str) -> None:
        await self.db.execute(
            delete(UserUmgAccess).where(
                UserUmgAccess.user_id == user_id,
                UserUmgAccess.umg_id == umg_id,
            )
        )

    async def clear_user_service_access(self, user_id: str) -> None:
        await self.db.execute(delete(UserServiceAccess).where(UserServiceAccess.user_id == user_id))

    async def clear_user_umg_access(self, user_id: str) -> None:
        await self.db.execute(delete(UserUmgAccess).where(UserUmgAccess.user_id == user_id))

    async def set_user_access(
        self,
        user_id: str,
        umg_ids: Iterable[str],
        service_ids: Iterable[str],
    ) -> tuple[list[str], list[str]]:
        """Replace all of a user's grants. Returns the (umg_ids, service_ids) now held."""
        await self._ensure_user(user_id)
        await self.clear_user_umg_access(user_id)
        await self.clear_user_service_access(user_id)

        umgs = list(dict.fromkeys(umg_ids))
        services = list(dict.fromkeys(service_ids))
        for umg_id in umgs:
            await self.grant_umg_access(user_id, umg_id)
        for service_id in services:
            await self.grant_service_access(user_id, service_id)

        logger.info(
            "User access replaced",
            user_id=user_id,
            umg_count=len(umgs),
            service_count=len(services),
        )
        return umgs, services

    async def get_user_access(self, user_id: str) -> tuple[list[str], list[str]]:
        umgs = await self.db.execute(
            select(UserUmgAccess.umg_id).where(UserUmgAccess.user_id == user_id)
        )
        services = await self.db.execute(
            select(UserServiceAccess.service_id).where(UserServiceAccess.user_id == user_id)
        )
        return list(umgs.scalars().all()), list(services.scalars().all())


__all__ = ["OrgStructureService"]
