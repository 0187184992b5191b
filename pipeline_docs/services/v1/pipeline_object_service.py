# pipeline_docs/services/v1/pipeline_object_service.py
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from common import ConflictError, NotFoundError, logger
from pipeline_docs.db.models import ObjectService, PipelineObject, Service, Umg
from pipeline_docs.db.schemas import ObjectCreate, ObjectUpdate


@dataclass
class LinkedService:
    service: Service
    is_primary: bool


class PipelineObjectService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_objects(self, umg_id: Optional[str] = None) -> list[PipelineObject]:
        query = select(PipelineObject).order_by(PipelineObject.name)
        if umg_id is not None:
            query = query.where(PipelineObject.umg_id == umg_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_object(self, object_id: str) -> PipelineObject:
        obj = await self.db.get(PipelineObject, object_id)
        if obj is None:
            raise NotFoundError("Object", object_id)
        return obj

    async def get_object_by_qr_code(self, qr_code: str) -> PipelineObject:
        query = (
            select(PipelineObject)
            .where(PipelineObject.qr_code == qr_code)
            .execution_options(logging_token="PipelineObjectService.get_object_by_qr_code")
        )
        obj = (await self.db.execute(query)).scalar_one_or_none()
        if obj is None:
            raise NotFoundError("Object with QR code", qr_code)
        return obj

    async def _ensure_code_free(self, code: str, exclude_id: Optional[str] = None) -> None:
        query = select(PipelineObject.object_id).where(PipelineObject.code == code)
        if exclude_id:
            query = query.where(PipelineObject.object_id != exclude_id)
        if await self.db.scalar(query):
            raise ConflictError(f"Object code '{code}' already exists")

    async def _ensure_umg(self, umg_id: str) -> None:
        if await self.db.get(Umg, umg_id) is None:
            raise NotFoundError("UMG", umg_id)

    async def create_object(self, data: ObjectCreate) -> PipelineObject:
        """Create an object; a unique QR code is generated on insert."""
        await self._ensure_code_free(data.code)
        await self._ensure_umg(data.umg_id)

        obj = PipelineObject(
            code=data.code,
            name=data.name,
            type=data.type,
            umg_id=data.umg_id,
            status=data.status,
            location=data.location,
            description=data.description,
            extra_metadata=data.metadata,
        )
        self.db.add(obj)
        await self.db.flush()

        for index, service_id in enumerate(dict.fromkeys(data.service_ids)):
            await self.assign_service(obj.object_id, service_id, is_primary=index == 0)

        logger.info("Object created", object_id=obj.object_id, qr_code=obj.qr_code)
        return obj

    async def update_object(self, object_id: str, data: ObjectUpdate) -> PipelineObject:
        obj = await self.get_object(object_id)
        changes = data.model_dump(exclude_unset=True)

        if "code" in changes and changes["code"] != obj.code:
            await self._ensure_code_free(changes["code"], exclude_id=object_id)
        if "umg_id" in changes and changes["umg_id"] != obj.umg_id:
            await self._ensure_umg(changes["umg_id"])
        if "metadata" in changes:
            obj.extra_metadata = changes.pop("metadata")

        for key, value in changes.items():
            setattr(obj, key, value)
        await self.db.flush()
        return obj

    async def delete_object(self, object_id: str) -> None:
        # Service links cascade; documents keep existing with object_id set to NULL
        obj = await self.get_object(object_id)
        await self.db.delete(obj)
        await self.db.flush()

    async def assign_service(
        self,
        object_id: str,
        service_id: str,
        is_primary: bool = False,
    ) -> ObjectService:
        await self.get_object(object_id)
        if await self.db.get(Service, service_id) is None:
            raise NotFoundError("Service", service_id)

        link = (
            await self.db.execute(
                select(ObjectService).where(
                    ObjectService.object_id == object_id,
                    ObjectService.service_id == service_id,
                )
            )
        ).scalar_one_or_none()

        if link is None:
            link = ObjectService(object_id=object_id, service_id=service_id)
            self.db.add(link)
        link.is_primary = is_primary
        await self.db.flush()
        return link

    async def remove_service(self, object_id: str, service_id: str) -> None:
        await self.db.execute(
            delete(ObjectService).where(
                ObjectService.object_id == object_id,
                ObjectService.service_id == service_id,
            )
        )

    async def list_object_services(self, object_id: str) -> list[LinkedService]:
        await self.get_object(object_id)
        result = await self.db.execute(
            select(Service, ObjectService.is_primary)
            .join(ObjectService, ObjectService.service_id == Service.service_id)
            .where(ObjectService.object_id == object_id)
            .order_by(ObjectService.is_primary.desc(), Service.name)
        )
        return [LinkedService(service=s, is_primary=p) for s, p in result.all()]


__all__ = ["PipelineObjectService", "LinkedService"]
