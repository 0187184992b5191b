# pipeline_docs/db/schemas/document_schemas.py
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from .org_structure_schemas import ServiceResponse


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None


class CategoryResponse(CategoryCreate):
    model_config = ConfigDict(from_attributes=True)

    category_id: str
    created_at: datetime


class DocumentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=500)
    file_size: int = Field(0, ge=0)
    mime_type: str = Field(..., min_length=1, max_length=150)
    category_id: str = Field(..., min_length=1, max_length=36)
    object_id: Optional[str] = Field(None, max_length=36)
    umg_id: str = Field(..., min_length=1, max_length=36)
    tags: List[str] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = Field(
        None, validation_alias=AliasChoices("extra_metadata", "metadata")
    )


class DocumentCreate(DocumentBase):
    text_content: Optional[str] = None
    # Services granted view access on creation
    service_ids: List[str] = Field(default_factory=list)


class DocumentUpdate(BaseModel):
    """Changing any file field bumps the document version."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    file_name: Optional[str] = Field(None, min_length=1, max_length=255)
    file_path: Optional[str] = Field(None, min_length=1, max_length=500)
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = Field(None, min_length=1, max_length=150)
    category_id: Optional[str] = Field(None, min_length=1, max_length=36)
    object_id: Optional[str] = Field(None, max_length=36)
    umg_id: Optional[str] = Field(None, min_length=1, max_length=36)
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None
    text_content: Optional[str] = None
    # Stored on the archived version when the file is replaced
    change_note: Optional[str] = None


class DocumentResponse(DocumentBase):
    model_config = ConfigDict(from_attributes=True)

    document_id: str
    code: str
    uploaded_by: str
    version: int
    created_at: datetime
    updated_at: datetime


class DocumentGrant(BaseModel):
    can_view: bool = True
    can_edit: bool = False
    can_delete: bool = False


class DocumentGrantResponse(DocumentGrant):
    model_config = ConfigDict(from_attributes=True)

    document_id: str
    service_id: str


class DocumentVersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    version_id: str
    document_id: str
    version: int
    file_name: str
    file_path: str
    file_size: int
    mime_type: str
    changes: Optional[str] = None
    replaced_by: str
    created_at: datetime


class ScopedDocumentResponse(BaseModel):
    """One row per (document, granting service) pair."""

    document: DocumentResponse
    service: ServiceResponse
    permissions: DocumentGrant


__all__ = [
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "DocumentCreate",
    "DocumentUpdate",
    "DocumentResponse",
    "DocumentGrant",
    "DocumentGrantResponse",
    "DocumentVersionResponse",
    "ScopedDocumentResponse",
]
