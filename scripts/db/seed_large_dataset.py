# scripts/db/seed_large_dataset.py
import random
from typing import Optional

from sqlalchemy import select

from common import get_app_logger
from pipeline_docs.db import DbManager
from pipeline_docs.db.models import (
    Document,
    DocumentCategory,
    DocumentService,
    PipelineObject,
    Service,
    User,
)

logger = get_app_logger(__name__)

# Vocabulary for synthetic names and text; gives full-text search something to rank
_SUBJECTS = ["компрессор", "задвижка", "газопровод", "насос", "фильтр", "кран", "КИП"]
_KINDS = ["паспорт", "протокол испытаний", "инструкция", "схема", "акт осмотра"]


def _synthetic_document(
    index: int,
    category_id: str,
    umg_id: str,
    object_id: Optional[str],
    uploaded_by: str,
    rng: random.Random,
) -> Document:
    subject = rng.choice(_SUBJECTS)
    kind = rng.choice(_KINDS)
    file_name = f"bulk_{index:08d}.pdf"
    return Document(
        code=f"BULK-{index:08d}",
        name=f"{kind.capitalize()} {subject} №{index}",
        file_name=file_name,
        file_path=f"bulk/{file_name}",
        file_size=rng.randint(10_000, 10_000_000),
        mime_type="application/pdf",
        category_id=category_id,
        object_id=object_id,
        umg_id=umg_id,
        tags=[subject, kind],
        text_content=f"{kind} {subject} объект {index}",
        uploaded_by=uploaded_by,
    )


async def seed_large_dataset(
    db_manager: DbManager,
    batch_size: int = 10_000,
    total_records: int = 1_000_000,
    seed: int = 42,
):
    """
    Insert synthetic documents in batches, each granted to one existing
    service. Requires reference data from seed_db.
    """
    rng = random.Random(seed)

    async with db_manager.session() as session:
        services = list((await session.execute(select(Service))).scalars().all())
        category_ids = list((await session.scalars(select(DocumentCategory.category_id))).all())
        objects = list((await session.execute(select(PipelineObject))).scalars().all())
        uploaded_by = await session.scalar(select(User.user_id).limit(1))

    if not services or not category_ids or uploaded_by is None:
        raise RuntimeError("Reference data missing; run the base seed first")

    for start_idx in range(0, total_records, batch_size):
        count = min(batch_size, total_records - start_idx)
        logger.info("Processing batch", batch=start_idx // batch_size + 1, records=count)

        documents: list[Document] = []
        grants: list[DocumentService] = []
        for index in range(start_idx, start_idx + count):
            service = rng.choice(services)
            candidates = [o for o in objects if o.umg_id == service.umg_id]
            document = _synthetic_document(
                index,
                category_id=rng.choice(category_ids),
                umg_id=service.umg_id,
                object_id=rng.choice(candidates).object_id if candidates else None,
                uploaded_by=uploaded_by,
                rng=rng,
            )
            document.document_id = Document.generate_uuid()
            documents.append(document)
            grants.append(
                DocumentService(document_id=document.document_id, service_id=service.service_id)
            )

        async with db_manager.session() as session:
            session.add_all(documents)
            await session.flush()
            session.add_all(grants)
            # Commit happens automatically on context exit


__all__ = ["seed_large_dataset"]
