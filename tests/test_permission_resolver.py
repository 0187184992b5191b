"""Role/permission resolution and service scope."""

from common import AccessConfig
from pipeline_docs.services.v1 import (
    AccessQueryService,
    Action,
    Module,
    PermissionResolver,
    RoleService,
)


async def test_admin_has_every_registered_capability(db, world):
    resolver = PermissionResolver(db)

    permissions = await resolver.get_user_permissions(world.admin_id)

    assert {(p.module, p.action) for p in permissions} == set(world.permission_ids)
    assert await resolver.user_has_permission(world.admin_id, Module.AUDIT, Action.EXPORT)


async def test_engineer_capabilities_come_from_role(db, world):
    resolver = PermissionResolver(db)

    assert await resolver.user_has_permission(world.engineer_id, Module.DOCUMENTS, Action.VIEW)
    assert await resolver.user_has_permission(world.engineer_id, "objects", "view")
    assert not await resolver.user_has_permission(world.engineer_id, Module.DOCUMENTS, Action.UPLOAD)
    assert not await resolver.user_has_permission(world.engineer_id, Module.USERS, Action.VIEW)


async def test_user_without_roles_resolves_to_nothing(db, world):
    resolver = PermissionResolver(db)

    assert await resolver.get_user_roles(world.outsider_id) == []
    assert await resolver.get_user_permissions(world.outsider_id) == []
    assert not await resolver.user_has_permission(world.outsider_id, Module.DOCUMENTS, Action.VIEW)


async def test_unknown_user_is_denied_not_an_error(db, world):
    resolver = PermissionResolver(db)

    assert not await resolver.user_has_permission("no-such-user", Module.DOCUMENTS, Action.VIEW)
    assert await resolver.get_user_scope("no-such-user") == frozenset()


async def test_permissions_shared_by_two_roles_are_not_duplicated(db, world):
    resolver = PermissionResolver(db)

    # Engineer's documents:view also comes from the admin role now
    await RoleService(db).assign_role_to_user(world.engineer_id, world.admin_role_id)

    permissions = await resolver.get_user_permissions(world.engineer_id)
    pairs = [(p.module, p.action) for p in permissions]
    assert len(pairs) == len(set(pairs))


async def test_scope_is_direct_service_grants_by_default(db, world):
    resolver = PermissionResolver(db)

    assert await resolver.get_user_scope(world.engineer_id) == frozenset({world.north_tech_id})


async def test_scope_includes_umg_services_when_enabled(db, world):
    resolver = PermissionResolver(db, AccessConfig(include_umg_services=True))

    scope = await resolver.get_user_scope(world.engineer_id)

    assert scope == frozenset({world.north_tech_id, world.east_tech_id})


async def test_service_and_umg_access_listings(db, world):
    resolver = PermissionResolver(db)

    services = await resolver.get_user_service_access(world.admin_id)
    umgs = await resolver.get_user_umg_access(world.engineer_id)

    assert {s.service_id for s in services} == {
        world.north_tech_id,
        world.north_oper_id,
        world.east_tech_id,
    }
    assert [u.umg_id for u in umgs] == [world.umg_east_id]


# ============================================
# Scoped listings
# ============================================


async def test_documents_by_access_yield_one_row_per_granting_service(db, world):
    rows = await AccessQueryService(db).get_documents_by_user_access(world.admin_id)

    pump_rows = [r for r in rows if r.document.document_id == world.documents["pump-manual"]]
    assert {r.service.service_id for r in pump_rows} == {world.north_tech_id, world.north_oper_id}
    # can_view=false grants never surface
    assert world.documents["hidden-report"] not in {r.document.document_id for r in rows}


async def test_visible_documents_are_distinct(db, world):
    documents = await AccessQueryService(db).list_visible_documents(world.admin_id)

    ids = [d.document_id for d in documents]
    assert len(ids) == len(set(ids))
    assert set(ids) == {
        world.documents["pump-manual"],
        world.documents["valve-passport"],
        world.documents["east-drawing"],
    }


async def test_engineer_sees_only_north_tech_documents(db, world):
    access = AccessQueryService(db)

    documents = await access.list_visible_documents(world.engineer_id)

    assert [d.document_id for d in documents] == [world.documents["pump-manual"]]
    assert await access.can_user_view_document(world.engineer_id, world.documents["pump-manual"])
    assert not await access.can_user_view_document(world.engineer_id, world.documents["valve-passport"])
    assert not await access.can_user_view_document(world.engineer_id, world.documents["hidden-report"])


async def test_empty_scope_gives_empty_listings(db, world):
    access = AccessQueryService(db)

    assert await access.get_documents_by_user_access(world.outsider_id) == []
    assert await access.get_objects_by_user_access(world.outsider_id) == []
    assert await access.list_visible_documents(world.outsider_id) == []
    assert not await access.can_user_view_document(world.outsider_id, world.documents["pump-manual"])


async def test_objects_by_access_follow_object_service_links(db, world):
    rows = await AccessQueryService(db).get_objects_by_user_access(world.engineer_id)

    assert [(r.object.object_id, r.service.service_id) for r in rows] == [
        (world.object_id, world.north_tech_id)
    ]


async def test_visible_documents_narrowed_to_object(db, world):
    documents = await AccessQueryService(db).list_visible_documents(
        world.admin_id, object_id=world.object_id
    )

    assert [d.document_id for d in documents] == [world.documents["pump-manual"]]
