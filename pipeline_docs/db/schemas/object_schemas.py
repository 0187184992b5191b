# pipeline_docs/db/schemas/object_schemas.py
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pipeline_docs.db.models import ObjectStatus
from .org_structure_schemas import ServiceResponse


class ObjectBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1, max_length=100)
    umg_id: str = Field(..., min_length=1, max_length=36)
    status: ObjectStatus = ObjectStatus.ACTIVE
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )


class ObjectCreate(ObjectBase):
    # The first service becomes the primary one
    service_ids: List[str] = Field(default_factory=list)


class ObjectUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[str] = Field(None, min_length=1, max_length=100)
    umg_id: Optional[str] = Field(None, min_length=1, max_length=36)
    status: Optional[ObjectStatus] = None
    location: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class ObjectResponse(ObjectBase):
    model_config = ConfigDict(from_attributes=True)

    object_id: str
    qr_code: str
    created_at: datetime
    updated_at: datetime


class ObjectServiceLink(BaseModel):
    is_primary: bool = False


class ObjectServiceResponse(BaseModel):
    service: ServiceResponse
    is_primary: bool


class ScopedObjectResponse(BaseModel):
    """An object together with the scoped service it is visible through."""

    object: ObjectResponse
    service: ServiceResponse


__all__ = [
    "ObjectCreate",
    "ObjectUpdate",
    "ObjectResponse",
    "ObjectServiceLink",
    "ObjectServiceResponse",
    "ScopedObjectResponse",
]
