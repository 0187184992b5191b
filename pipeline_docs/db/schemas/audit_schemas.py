# pipeline_docs/db/schemas/audit_schemas.py
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict
from pipeline_docs.db.models import AuditAction


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_id: str
    user_id: Optional[str] = None
    username: Optional[str] = None
    full_name: Optional[str] = None
    action: AuditAction
    resource: str
    resource_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool
    created_at: datetime


class AuditLogListResponse(BaseModel):
    items: List[AuditLogResponse]
    count: int


__all__ = ["AuditLogResponse", "AuditLogListResponse"]
