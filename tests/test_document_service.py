"""Documents, categories, downloads and pipeline objects."""
import pytest
from sqlalchemy import select

from common import NotFoundError, PermissionDeniedError, ResourceInUseError, ValidationFailedError
from pipeline_docs.db.models import Document
from pipeline_docs.db.schemas import CategoryCreate, DocumentCreate, DocumentUpdate, ObjectCreate
from pipeline_docs.services.v1 import AccessQueryService, DocumentService, PipelineObjectService


def _new_document(world, **overrides) -> DocumentCreate:
    data = dict(
        name="Compressor passport",
        file_name="passport.pdf",
        file_path="passport.pdf",
        file_size=2048,
        mime_type="application/pdf",
        category_id=world.category_id,
        umg_id=world.umg_north_id,
        tags=["compressor"],
    )
    data.update(overrides)
    return DocumentCreate(**data)


# ============================================
# Documents
# ============================================


async def test_create_document_grants_view_to_services(db, world):
    documents = DocumentService(db)

    document = await documents.create_document(
        _new_document(world, service_ids=[world.north_tech_id, world.north_tech_id]),
        uploaded_by=world.admin_id,
    )

    assert document.code.startswith("DOC-")
    assert document.version == 1
    grants = await documents.list_document_services(document.document_id)
    assert [(g.service_id, g.can_view, g.can_edit) for g in grants] == [
        (world.north_tech_id, True, False)
    ]
    assert await AccessQueryService(db).can_user_view_document(world.engineer_id, document.document_id)


async def test_create_document_checks_references(db, world):
    with pytest.raises(NotFoundError):
        await DocumentService(db).create_document(
            _new_document(world, category_id="missing"), uploaded_by=world.admin_id
        )


async def test_version_bumps_only_on_file_change(db, world):
    documents = DocumentService(db)
    document_id = world.documents["pump-manual"]

    await documents.update_document(document_id, DocumentUpdate(name="Pump manual rev. B"))
    unchanged = await documents.get_document(document_id)
    assert unchanged.version == 1

    # Same file name again is not a change
    await documents.update_document(document_id, DocumentUpdate(file_name="pump-manual.pdf"))
    assert (await documents.get_document(document_id)).version == 1

    await documents.update_document(document_id, DocumentUpdate(file_path="pump-manual-b.pdf", file_size=20))
    changed = await documents.get_document(document_id)
    assert changed.version == 2
    assert changed.name == "Pump manual rev. B"


async def test_replaced_file_is_kept_as_a_version(db, world):
    documents = DocumentService(db)
    document_id = world.documents["pump-manual"]

    await documents.update_document(document_id, DocumentUpdate(name="Pump manual rev. B"))
    assert await documents.list_document_versions(document_id) == []

    await documents.update_document(
        document_id,
        DocumentUpdate(file_name="pump-manual-b.pdf", file_path="pump-manual-b.pdf", change_note="rev. B"),
        updated_by=world.engineer_id,
    )
    await documents.update_document(document_id, DocumentUpdate(file_path="pump-manual-c.pdf"))

    versions = await documents.list_document_versions(document_id)
    assert [(v.version, v.file_path, v.changes) for v in versions] == [
        (2, "pump-manual-b.pdf", None),
        (1, "pump-manual.pdf", "rev. B"),
    ]
    assert versions[1].replaced_by == world.engineer_id
    assert versions[0].replaced_by == world.admin_id
    assert (await documents.get_document(document_id)).version == 3


async def test_grant_is_overwritten_not_duplicated(db, world):
    documents = DocumentService(db)
    document_id = world.documents["valve-passport"]

    await documents.assign_service_to_document(document_id, world.north_oper_id, can_view=True, can_edit=True)

    grants = await documents.list_document_services(document_id)
    assert [(g.service_id, g.can_edit) for g in grants] == [(world.north_oper_id, True)]


async def test_invisible_document_is_forbidden(db, world):
    documents = DocumentService(db)

    with pytest.raises(PermissionDeniedError):
        await documents.get_visible_document(world.documents["valve-passport"], world.engineer_id)
    with pytest.raises(NotFoundError):
        await documents.get_visible_document("missing", world.admin_id)


async def test_category_in_use_cannot_be_deleted(db, world):
    documents = DocumentService(db)

    with pytest.raises(ResourceInUseError) as exc_info:
        await documents.delete_category(world.category_id)
    assert exc_info.value.references == {"documents": 4}

    spare = await documents.create_category(CategoryCreate(name="Drawings", code="DRAWINGS"))
    await documents.delete_category(spare.category_id)


# ============================================
# Downloads
# ============================================


async def test_download_resolves_file_inside_upload_dir(db, world, upload_dir):
    (upload_dir / "pump-manual.pdf").write_bytes(b"%PDF-1.4")

    document, path = await DocumentService(db).resolve_download(
        world.documents["pump-manual"], world.engineer_id, upload_dir
    )

    assert document.name == "pump-manual"
    assert path == (upload_dir / "pump-manual.pdf").resolve()


async def test_download_rejects_paths_outside_upload_dir(db, world, upload_dir):
    documents = DocumentService(db)
    document_id = world.documents["pump-manual"]
    await documents.update_document(document_id, DocumentUpdate(file_path="../../etc/passwd"))

    with pytest.raises(ValidationFailedError):
        await documents.resolve_download(document_id, world.admin_id, upload_dir)


async def test_download_of_missing_file_is_not_found(db, world, upload_dir):
    with pytest.raises(NotFoundError):
        await DocumentService(db).resolve_download(
            world.documents["east-drawing"], world.admin_id, upload_dir
        )


async def test_download_checks_visibility_first(db, world, upload_dir):
    with pytest.raises(PermissionDeniedError):
        await DocumentService(db).resolve_download(
            world.documents["east-drawing"], world.engineer_id, upload_dir
        )


# ============================================
# Objects
# ============================================


async def test_object_gets_qr_code_and_primary_service(db, world):
    objects = PipelineObjectService(db)

    obj = await objects.create_object(
        ObjectCreate(
            code="OBJ-002",
            name="Valve node",
            type="valve",
            umg_id=world.umg_north_id,
            service_ids=[world.north_oper_id, world.north_tech_id],
        )
    )

    assert obj.qr_code.startswith("OBJ-")
    assert (await objects.get_object_by_qr_code(obj.qr_code)).object_id == obj.object_id
    linked = await objects.list_object_services(obj.object_id)
    assert [(link.service.service_id, link.is_primary) for link in linked] == [
        (world.north_oper_id, True),
        (world.north_tech_id, False),
    ]


async def test_unknown_qr_code_is_not_found(db, world):
    with pytest.raises(NotFoundError):
        await PipelineObjectService(db).get_object_by_qr_code("OBJ-0-unknown")


async def test_documents_by_object_respect_visibility(db, world):
    documents = DocumentService(db)

    assert [d.name for d in await documents.list_documents_by_object(world.object_id, world.engineer_id)] == [
        "pump-manual"
    ]
    assert await documents.list_documents_by_object(world.object_id, world.outsider_id) == []


async def test_deleting_object_keeps_its_documents(db, world):
    await PipelineObjectService(db).delete_object(world.object_id)

    object_id = await db.scalar(
        select(Document.object_id).where(Document.document_id == world.documents["pump-manual"])
    )
    assert object_id is None
