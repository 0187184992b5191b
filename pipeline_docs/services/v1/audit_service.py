# pipeline_docs/services/v1/audit_service.py
"""
Audit trail.

Audit rows are written best-effort in a session of their own, after the
business transaction has committed. A failed audit write is logged and
reported through AuditOutcome; it never raises into the caller and never
undoes the mutation it describes.
"""
import csv
import io
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common import logger
from pipeline_docs.db.db_manager import DbManager
from pipeline_docs.db.models import AuditAction, AuditLog, User

T = TypeVar("T")

DEFAULT_LIST_LIMIT = 100
EXPORT_LIMIT = 10_000

CSV_HEADER = ["Date", "User", "Action", "Resource", "Resource ID", "Status", "IP address"]


@dataclass(frozen=True)
class AuditContext:
    """Who is acting and from where; built once per request."""

    user_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass(frozen=True)
class AuditEntry:
    action: AuditAction
    resource: str
    resource_id: Optional[str] = None
    details: Optional[dict[str, Any]] = None
    success: bool = True


@dataclass(frozen=True)
class AuditOutcome:
    written: bool
    error: Optional[str] = None


@dataclass
class Audited(Generic[T]):
    result: T
    audit: AuditOutcome


@dataclass
class AuditFilters:
    user_id: Optional[str] = None
    action: Optional[AuditAction] = None
    resource: Optional[str] = None
    success: Optional[bool] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    limit: int = DEFAULT_LIST_LIMIT


@dataclass
class AuditRecord:
    log: AuditLog
    username: Optional[str] = None
    full_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "audit_id": self.log.audit_id,
            "user_id": self.log.user_id,
            "username": self.username,
            "full_name": self.full_name,
            "action": self.log.action,
            "resource": self.log.resource,
            "resource_id": self.log.resource_id,
            "details": self.log.details,
            "ip_address": self.log.ip_address,
            "user_agent": self.log.user_agent,
            "success": self.log.success,
            "created_at": self.log.created_at,
        }


class AuditService:
    """
    Writes go through `db_manager` (a fresh session per entry); reads use the
    request session `db` when one is given.
    """

    def __init__(self, db_manager: DbManager, db: Optional[AsyncSession] = None):
        self.db_manager = db_manager
        self.db = db

    async def record(self, context: AuditContext, entry: AuditEntry) -> AuditOutcome:
        row = AuditLog(
            user_id=context.user_id,
            action=entry.action,
            resource=entry.resource,
            resource_id=entry.resource_id,
            details=entry.details,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            success=entry.success,
        )
        try:
            async with self.db_manager.session() as session:
                session.add(row)
        except Exception as e:
            logger.error(
                "Audit write failed",
                action=entry.action.value,
                resource=entry.resource,
                resource_id=entry.resource_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return AuditOutcome(written=False, error=str(e))

        return AuditOutcome(written=True)

    async def commit_and_record(
        self,
        db: AsyncSession,
        context: AuditContext,
        entry: AuditEntry,
        result: T,
    ) -> Audited[T]:
        """
        Commit the business transaction, then audit it. A failed commit
        propagates and nothing is audited.
        """
        await db.commit()
        outcome = await self.record(context, entry)
        return Audited(result=result, audit=outcome)

    def _filtered_query(self, filters: AuditFilters):
        query = select(AuditLog, User.username, User.full_name).outerjoin(
            User, User.user_id == AuditLog.user_id
        )

        if filters.user_id:
            query = query.where(AuditLog.user_id == filters.user_id)
        if filters.action:
            query = query.where(AuditLog.action == filters.action)
        if filters.resource:
            query = query.where(AuditLog.resource == filters.resource)
        if filters.success is not None:
            query = query.where(AuditLog.success.is_(filters.success))
        if filters.date_from is not None:
            query = query.where(AuditLog.created_at >= filters.date_from)
        if filters.date_to is not None:
            query = query.where(AuditLog.created_at <= filters.date_to)

        return query.order_by(AuditLog.created_at.desc(), AuditLog.audit_id)

    async def list_audit_logs(self, filters: AuditFilters) -> list[AuditRecord]:
        query = self._filtered_query(filters).limit(filters.limit).execution_options(
            logging_token="AuditService.list_audit_logs"
        )
        if self.db is not None:
            result = await self.db.execute(query)
            rows = result.all()
        else:
            async with self.db_manager.session() as session:
                rows = (await session.execute(query)).all()

        return [
            AuditRecord(log=log, username=username, full_name=full_name)
            for log, username, full_name in rows
        ]

    async def export_audit_logs_csv(self, filters: AuditFilters) -> str:
        """CSV with a UTF-8 BOM so spreadsheet tools detect the encoding."""
        filters.limit = min(filters.limit, EXPORT_LIMIT) if filters.limit else EXPORT_LIMIT
        records = await self.list_audit_logs(filters)

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_HEADER)
        for record in records:
            writer.writerow(
                [
                    record.log.created_at.strftime("%Y-%m-%d %H:%M:%S"),
                    record.full_name or record.username or "System",
                    record.log.action.value,
                    record.log.resource,
                    record.log.resource_id or "",
                    "success" if record.log.success else "failure",
                    record.log.ip_address or "",
                ]
            )

        return "\ufeff" + buffer.getvalue()


__all__ = [
    "AuditService",
    "AuditContext",
    "AuditEntry",
    "AuditOutcome",
    "Audited",
    "AuditFilters",
    "AuditRecord",
    "EXPORT_LIMIT",
]
