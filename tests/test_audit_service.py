"""Best-effort audit writes, listing filters and CSV export."""
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine

from pipeline_docs.db import DbManager
from pipeline_docs.db.models import AuditAction, Document
from pipeline_docs.services.v1 import (
    AuditContext,
    AuditEntry,
    AuditFilters,
    AuditService,
    DocumentService,
)


async def _record_sample(audit: AuditService, world) -> None:
    admin = AuditContext(user_id=world.admin_id, ip_address="10.0.0.1", user_agent="pytest")
    await audit.record(admin, AuditEntry(AuditAction.CREATE, "document", "doc-1"))
    await audit.record(admin, AuditEntry(AuditAction.DELETE, "document", "doc-1"))
    await audit.record(
        AuditContext(ip_address="10.0.0.2"),
        AuditEntry(AuditAction.LOGIN, "auth", details={"reason": "unknown_user"}, success=False),
    )


async def test_record_writes_a_row(db_manager, world):
    audit = AuditService(db_manager)

    outcome = await audit.record(
        AuditContext(user_id=world.admin_id), AuditEntry(AuditAction.READ, "document", "doc-1")
    )

    assert outcome.written
    assert outcome.error is None
    records = await audit.list_audit_logs(AuditFilters())
    assert [(r.log.action, r.username) for r in records] == [(AuditAction.READ, "admin")]


async def test_failed_write_is_reported_not_raised(tmp_path, world):
    # A database with no tables at all
    empty = tmp_path / "empty.db"
    create_engine(f"sqlite:///{empty}").dispose()
    manager = DbManager(f"sqlite+aiosqlite:///{empty}")
    try:
        outcome = await AuditService(manager).record(
            AuditContext(user_id=world.admin_id), AuditEntry(AuditAction.UPDATE, "document")
        )
    finally:
        await manager.dispose()

    assert not outcome.written
    assert outcome.error


async def test_commit_and_record_commits_first(db_manager, db, world):
    audit = AuditService(db_manager)
    documents = DocumentService(db)

    await documents.delete_document(world.documents["valve-passport"])
    audited = await audit.commit_and_record(
        db,
        AuditContext(user_id=world.admin_id),
        AuditEntry(AuditAction.DELETE, "document", world.documents["valve-passport"]),
        result=None,
    )

    assert audited.audit.written
    # The delete is visible from a separate session
    async with db_manager.session() as other:
        assert await other.get(Document, world.documents["valve-passport"]) is None
        records = await AuditService(db_manager, other).list_audit_logs(AuditFilters())
    assert records[0].log.resource_id == world.documents["valve-passport"]


async def test_list_filters(db_manager, world):
    audit = AuditService(db_manager)
    await _record_sample(audit, world)

    by_user = await audit.list_audit_logs(AuditFilters(user_id=world.admin_id))
    by_action = await audit.list_audit_logs(AuditFilters(action=AuditAction.DELETE))
    failures = await audit.list_audit_logs(AuditFilters(success=False))
    limited = await audit.list_audit_logs(AuditFilters(limit=1))

    assert len(by_user) == 2
    assert [r.log.action for r in by_action] == [AuditAction.DELETE]
    # Anonymous rows survive the outer join to users
    assert [(r.username, r.log.details) for r in failures] == [(None, {"reason": "unknown_user"})]
    assert len(limited) == 1


async def test_date_filters(db_manager, world):
    audit = AuditService(db_manager)
    await _record_sample(audit, world)
    now = datetime.now(timezone.utc)

    recent = await audit.list_audit_logs(AuditFilters(date_from=now - timedelta(minutes=5)))
    old = await audit.list_audit_logs(AuditFilters(date_to=now - timedelta(days=1)))

    assert len(recent) == 3
    assert old == []


async def test_csv_export(db_manager, world):
    audit = AuditService(db_manager)
    await _record_sample(audit, world)

    content = await audit.export_audit_logs_csv(AuditFilters())

    assert content.startswith("\ufeff")
    lines = content.lstrip("\ufeff").splitlines()
    assert lines[0] == "Date,User,Action,Resource,Resource ID,Status,IP address"
    assert len(lines) == 4

    login = next(line for line in lines if ",login," in line)
    assert ",System,login,auth,,failure,10.0.0.2" in login
    assert any(",System Admin,delete,document,doc-1,success,10.0.0.1" in line for line in lines)
