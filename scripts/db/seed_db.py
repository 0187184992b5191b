# scripts/db/seed_db.py
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common import get_app_logger
from pipeline_docs.db import DbManager
from pipeline_docs.db.models import Role
from pipeline_docs.db.schemas import (
    CategoryCreate,
    DepartmentCreate,
    DocumentCreate,
    ObjectCreate,
    ServiceCreate,
    UmgCreate,
    UserCreate,
)
from pipeline_docs.services.v1 import (
    DocumentService,
    OrgStructureService,
    PipelineObjectService,
    RoleService,
    UserService,
    all_capabilities,
)

logger = get_app_logger(__name__)


def _service_key(umg_code: str, service_code: str) -> str:
    return f"{umg_code}/{service_code}"


async def seed_permissions(session: AsyncSession) -> dict[tuple[str, str], str]:
    """One permission row per registered capability -> {(module, action): permission_id}."""
    roles = RoleService(session)
    ids: dict[tuple[str, str], str] = {}
    for module, action in all_capabilities():
        permission = await roles.create_permission(
            module.value, action.value, description=f"{module.value}:{action.value}"
        )
        ids[(module.value, action.value)] = permission.permission_id
    return ids


async def seed_roles(
    session: AsyncSession,
    templates: list[dict[str, Any]],
    permission_ids: dict[tuple[str, str], str],
) -> dict[str, str]:
    roles = RoleService(session)
    role_ids: dict[str, str] = {}
    for template in templates:
        capabilities = template["capabilities"]
        if capabilities is None:
            granted = list(permission_ids.values())
        else:
            granted = [permission_ids[(m.value, a.value)] for m, a in capabilities]

        role = await roles.create_role(
            name=template["name"],
            description=template.get("description"),
            is_system=True,
            permission_ids=granted,
        )
        role_ids[role.name] = role.role_id
    return role_ids


async def seed_org_structure(
    session: AsyncSession, data_template: dict[str, Any]
) -> tuple[dict[str, str], dict[str, str]]:
    """Returns ({umg code: umg_id}, {"UMG/SERVICE": service_id})."""
    org = OrgStructureService(session)

    umg_ids: dict[str, str] = {}
    for template in data_template.get("umg", []):
        umg = await org.create_umg(UmgCreate(**template))
        umg_ids[umg.code] = umg.umg_id

    service_ids: dict[str, str] = {}
    for template in data_template.get("services", []):
        fields = {k: v for k, v in template.items() if k != "umg"}
        service = await org.create_service(
            ServiceCreate(umg_id=umg_ids[template["umg"]], **fields)
        )
        service_ids[_service_key(template["umg"], service.code)] = service.service_id

    department_ids: dict[tuple[str, str], str] = {}
    for template in data_template.get("departments", []):
        service_id = service_ids[template["service"]]
        parent = template.get("parent")
        department = await org.create_department(
            DepartmentCreate(
                service_id=service_id,
                parent_id=department_ids[(service_id, parent)] if parent else None,
                name=template["name"],
                code=template["code"],
                description=template.get("description"),
            )
        )
        department_ids[(service_id, department.code)] = department.department_id

    return umg_ids, service_ids


async def seed_db(
    db_manager: DbManager,
    data_template: dict[str, Any],
) -> dict[str, int]:
    """
    Seed reference data: capabilities, system roles, the admin user,
    org structure, categories, objects and sample documents.

    Runs in a single transaction. A database that already has roles is
    left untouched.

    Args:
        db_manager: Initialized DbManager instance
        data_template: Templates keyed as in DEFAULT_DATA_TEMPLATE

    Returns:
        Dict mapping section names to the number of rows created
    """
    if not hasattr(db_manager, "session_maker") or db_manager.session_maker is None:
        raise RuntimeError(
            "DbManager not properly initialized. "
            "Ensure verify_connection() was called during startup."
        )

    async with db_manager.session() as session:
        if await session.scalar(select(Role.role_id).limit(1)):
            logger.warning("Database already seeded, skipping")
            return {}

        permission_ids = await seed_permissions(session)
        role_ids = await seed_roles(session, data_template.get("roles", []), permission_ids)

        admin_template = dict(data_template["admin"])
        admin_role = admin_template.pop("role")
        admin = await UserService(session).create_user(UserCreate(**admin_template))
        await RoleService(session).assign_role_to_user(admin.user_id, role_ids[admin_role])

        umg_ids, service_ids = await seed_org_structure(session, data_template)

        documents = DocumentService(session)
        category_ids: dict[str, str] = {}
        for template in data_template.get("categories", []):
            category = await documents.create_category(CategoryCreate(**template))
            category_ids[category.code] = category.category_id

        objects = PipelineObjectService(session)
        object_ids: dict[str, str] = {}
        for template in data_template.get("objects", []):
            fields = {k: v for k, v in template.items() if k not in ("umg", "services")}
            obj = await objects.create_object(
                ObjectCreate(
                    umg_id=umg_ids[template["umg"]],
                    service_ids=[service_ids[s] for s in template.get("services", [])],
                    **fields,
                )
            )
            object_ids[obj.code] = obj.object_id

        document_count = 0
        for template in data_template.get("documents", []):
            document = await documents.create_document(
                DocumentCreate(
                    name=template["name"],
                    file_name=template["file_name"],
                    file_path=template["file_path"],
                    file_size=template.get("file_size", 0),
                    mime_type=template["mime_type"],
                    category_id=category_ids[template["category"]],
                    object_id=object_ids.get(template.get("object")),
                    umg_id=umg_ids[template["umg"]],
                    tags=template.get("tags", []),
                    text_content=template.get("text_content"),
                ),
                uploaded_by=admin.user_id,
            )
            document.code = template["code"]
            for grant in template.get("grants", []):
                await documents.assign_service_to_document(
                    document.document_id,
                    service_ids[grant["service"]],
                    can_view=grant.get("can_view", True),
                    can_edit=grant.get("can_edit", False),
                    can_delete=grant.get("can_delete", False),
                )
            document_count += 1

        counts = {
            "permissions": len(permission_ids),
            "roles": len(role_ids),
            "umg": len(umg_ids),
            "services": len(service_ids),
            "categories": len(category_ids),
            "objects": len(object_ids),
            "documents": document_count,
        }
        logger.info("Database seeded", **counts)
        # Commit happens automatically on context exit
        return counts


__all__ = ["seed_db", "seed_permissions", "seed_roles", "seed_org_structure"]
