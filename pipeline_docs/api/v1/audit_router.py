# pipeline_docs/api/v1/audit_router.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from common.scripts import day_bounds
from pipeline_docs.api.deps import get_audit_service, require_permission
from pipeline_docs.db.models import AuditAction
from pipeline_docs.db.schemas import AuditLogListResponse, AuditLogResponse
from pipeline_docs.services.v1 import (
    EXPORT_LIMIT,
    Action,
    AuditFilters,
    AuditService,
    Module,
)

audit_router = APIRouter(
    prefix="/audit",
    tags=["Audit"],
)


def audit_filters(
    user_id: Optional[str] = Query(None, alias="userId"),
    action: Optional[AuditAction] = Query(None),
    resource: Optional[str] = Query(None),
    success: Optional[bool] = Query(None),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    limit: int = Query(100, ge=1, le=1000),
) -> AuditFilters:
    """Query params to filters. Each date bound applies on its own, whole days inclusive."""
    return AuditFilters(
        user_id=user_id,
        action=action,
        resource=resource,
        success=success,
        date_from=day_bounds(date_from)[0] if date_from else None,
        date_to=day_bounds(date_to)[1] if date_to else None,
        limit=limit,
    )


@audit_router.get(
    "",
    response_model=AuditLogListResponse,
    dependencies=[Depends(require_permission(Module.AUDIT, Action.VIEW))],
    summary="Audit trail, newest first",
)
async def list_audit_logs(
    filters: AuditFilters = Depends(audit_filters),
    audit: AuditService = Depends(get_audit_service),
):
    records = await audit.list_audit_logs(filters)
    items = [AuditLogResponse.model_validate(r.to_dict()) for r in records]
    return AuditLogListResponse(items=items, count=len(items))


@audit_router.get(
    "/export",
    response_class=Response,
    dependencies=[Depends(require_permission(Module.AUDIT, Action.EXPORT))],
    summary="Audit trail as CSV",
    description=f"""
    UTF-8 CSV with BOM, at most {EXPORT_LIMIT} rows, same filters as the list.
    """,
)
async def export_audit_logs(
    filters: AuditFilters = Depends(audit_filters),
    audit: AuditService = Depends(get_audit_service),
):
    filters.limit = EXPORT_LIMIT
    content = await audit.export_audit_logs_csv(filters)
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="audit-log.csv"'},
    )


__all__ = ["audit_router"]
