# pipeline_docs/db/schemas/org_structure_schemas.py
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class UmgCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None


class UmgUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None


class UmgResponse(UmgCreate):
    model_config = ConfigDict(from_attributes=True)

    umg_id: str
    created_at: datetime


class ServiceCreate(BaseModel):
    umg_id: str = Field(..., min_length=1, max_length=36)
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None


class ServiceUpdate(BaseModel):
    umg_id: Optional[str] = Field(None, min_length=1, max_length=36)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None


class ServiceResponse(ServiceCreate):
    model_config = ConfigDict(from_attributes=True)

    service_id: str
    created_at: datetime


class DepartmentCreate(BaseModel):
    service_id: str = Field(..., min_length=1, max_length=36)
    parent_id: Optional[str] = Field(None, max_length=36)
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None


class DepartmentUpdate(BaseModel):
    """
    parent_id is only changed when present in the payload; send null
    explicitly to make the department a root.
    """

    service_id: Optional[str] = Field(None, min_length=1, max_length=36)
    parent_id: Optional[str] = Field(None, max_length=36)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None


class DepartmentResponse(DepartmentCreate):
    model_config = ConfigDict(from_attributes=True)

    department_id: str
    level: int
    created_at: datetime


__all__ = [
    "UmgCreate",
    "UmgUpdate",
    "UmgResponse",
    "ServiceCreate",
    "ServiceUpdate",
    "ServiceResponse",
    "DepartmentCreate",
    "DepartmentUpdate",
    "DepartmentResponse",
]
