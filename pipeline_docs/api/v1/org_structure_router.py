# pipeline_docs/api/v1/org_structure_router.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from pipeline_docs.api.deps import require_permission
from pipeline_docs.db import get_db
from pipeline_docs.db.schemas import (
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    MessageResponse,
    ServiceCreate,
    ServiceResponse,
    ServiceUpdate,
    UmgCreate,
    UmgResponse,
    UmgUpdate,
)
from pipeline_docs.services.v1 import Action, Module, OrgStructureService

org_structure_router = APIRouter(tags=["Org structure"])

_view = [Depends(require_permission(Module.ORGSTRUCTURE, Action.VIEW))]
_create = [Depends(require_permission(Module.ORGSTRUCTURE, Action.CREATE))]
_edit = [Depends(require_permission(Module.ORGSTRUCTURE, Action.EDIT))]
_delete = [Depends(require_permission(Module.ORGSTRUCTURE, Action.DELETE))]

_in_use = {409: {"description": "Still referenced; see details.references"}}


# ============================================
# UMG
# ============================================


@org_structure_router.get("/umg", response_model=List[UmgResponse], dependencies=_view)
async def list_umgs(db: AsyncSession = Depends(get_db)):
    return await OrgStructureService(db).list_umgs()


@org_structure_router.get("/umg/{umg_id}", response_model=UmgResponse, dependencies=_view)
async def get_umg(umg_id: str, db: AsyncSession = Depends(get_db)):
    return await OrgStructureService(db).get_umg(umg_id)


@org_structure_router.post(
    "/umg",
    response_model=UmgResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_create,
)
async def create_umg(payload: UmgCreate, db: AsyncSession = Depends(get_db)):
    return await OrgStructureService(db).create_umg(payload)


@org_structure_router.patch("/umg/{umg_id}", response_model=UmgResponse, dependencies=_edit)
async def update_umg(umg_id: str, payload: UmgUpdate, db: AsyncSession = Depends(get_db)):
    return await OrgStructureService(db).update_umg(umg_id, payload)


@org_structure_router.delete(
    "/umg/{umg_id}",
    response_model=MessageResponse,
    dependencies=_delete,
    responses=_in_use,
)
async def delete_umg(umg_id: str, db: AsyncSession = Depends(get_db)):
    await OrgStructureService(db).delete_umg(umg_id)
    return MessageResponse(message="UMG deleted")


# ============================================
# Services
# ============================================


@org_structure_router.get("/services", response_model=List[ServiceResponse], dependencies=_view)
async def list_services(
    umg_id: Optional[str] = Query(None, description="Only services of this UMG"),
    db: AsyncSession = Depends(get_db),
):
    return await OrgStructureService(db).list_services(umg_id)


@org_structure_router.get(
    "/services/{service_id}", response_model=ServiceResponse, dependencies=_view
)
async def get_service(service_id: str, db: AsyncSession = Depends(get_db)):
    return await OrgStructureService(db).get_service(service_id)


@org_structure_router.post(
    "/services",
    response_model=ServiceResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_create,
)
async def create_service(payload: ServiceCreate, db: AsyncSession = Depends(get_db)):
    return await OrgStructureService(db).create_service(payload)


@org_structure_router.patch(
    "/services/{service_id}", response_model=ServiceResponse, dependencies=_edit
)
async def update_service(
    service_id: str, payload: ServiceUpdate, db: AsyncSession = Depends(get_db)
):
    return await OrgStructureService(db).update_service(service_id, payload)


@org_structure_router.delete(
    "/services/{service_id}",
    response_model=MessageResponse,
    dependencies=_delete,
    responses=_in_use,
)
async def delete_service(service_id: str, db: AsyncSession = Depends(get_db)):
    await OrgStructureService(db).delete_service(service_id)
    return MessageResponse(message="Service deleted")


# ============================================
# Departments
# ============================================


@org_structure_router.get(
    "/departments", response_model=List[DepartmentResponse], dependencies=_view
)
async def list_departments(
    service_id: Optional[str] = Query(None, description="Only departments of this service"),
    db: AsyncSession = Depends(get_db),
):
    return await OrgStructureService(db).list_departments(service_id)


@org_structure_router.get(
    "/departments/{department_id}", response_model=DepartmentResponse, dependencies=_view
)
async def get_department(department_id: str, db: AsyncSession = Depends(get_db)):
    return await OrgStructureService(db).get_department(department_id)


@org_structure_router.post(
    "/departments",
    response_model=DepartmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=_create,
    responses={400: {"description": "Parent in another service or would create a cycle"}},
)
async def create_department(payload: DepartmentCreate, db: AsyncSession = Depends(get_db)):
    return await OrgStructureService(db).create_department(payload)


@org_structure_router.patch(
    "/departments/{department_id}",
    response_model=DepartmentResponse,
    dependencies=_edit,
    responses={400: {"description": "Parent in another service or would create a cycle"}},
)
async def update_department(
    department_id: str, payload: DepartmentUpdate, db: AsyncSession = Depends(get_db)
):
    return await OrgStructureService(db).update_department(department_id, payload)


@org_structure_router.delete(
    "/departments/{department_id}",
    response_model=MessageResponse,
    dependencies=_delete,
    responses=_in_use,
)
async def delete_department(department_id: str, db: AsyncSession = Depends(get_db)):
    await OrgStructureService(db).delete_department(department_id)
    return MessageResponse(message="Department deleted")


__all__ = ["org_structure_router"]
