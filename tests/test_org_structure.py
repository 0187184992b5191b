"""Department hierarchy rules and org structure deletes."""
import pytest

from common import ConflictError, ResourceInUseError, ValidationFailedError
from pipeline_docs.db.schemas import DepartmentCreate, DepartmentUpdate, ServiceCreate, UmgCreate
from pipeline_docs.services.v1 import DepartmentNode, DepartmentTree, OrgStructureService


def _tree() -> DepartmentTree:
    """a -> b -> c, and a second root d."""
    return DepartmentTree(
        "svc",
        [
            DepartmentNode("a", None, 1),
            DepartmentNode("b", "a", 2),
            DepartmentNode("c", "b", 3),
            DepartmentNode("d", None, 1),
        ],
    )


# ============================================
# DepartmentTree
# ============================================


def test_ancestors_and_descendants():
    tree = _tree()

    assert tree.ancestors("c") == ["b", "a"]
    assert tree.descendants("a") == ["b", "c"]
    assert tree.descendants("d") == []


def test_level_is_parent_level_plus_one():
    tree = _tree()

    assert tree.level_for_parent(None, None) == 1
    assert tree.level_for_parent(None, "c") == 4


@pytest.mark.parametrize(
    "department_id, parent_id",
    [
        ("a", "a"),  # itself
        ("a", "c"),  # own descendant
        ("b", "c"),
        (None, "elsewhere"),  # parent in another service
    ],
)
def test_invalid_parents_are_rejected(department_id, parent_id):
    with pytest.raises(ValidationFailedError):
        _tree().level_for_parent(department_id, parent_id)


def test_attach_recomputes_subtree_levels():
    tree = _tree()

    changed = tree.attach("b", "d")

    # b stays at level 2 under d; nothing below it moves
    assert changed == {}
    assert tree.node("b").parent_id == "d"

    changed = tree.attach("a", "c")
    assert changed == {"a": 4}

    changed = tree.attach("b", None)
    assert changed == {"b": 1, "c": 2, "a": 3}


def test_existing_cycle_in_data_is_reported():
    tree = DepartmentTree(
        "svc", [DepartmentNode("x", "y", 1), DepartmentNode("y", "x", 2)]
    )

    with pytest.raises(ValidationFailedError):
        tree.ancestors("x")


# ============================================
# OrgStructureService
# ============================================


async def test_department_levels_follow_parents(db, world):
    org = OrgStructureService(db)

    root = await org.create_department(
        DepartmentCreate(service_id=world.north_tech_id, name="Diagnostics", code="DIAG")
    )
    child = await org.create_department(
        DepartmentCreate(
            service_id=world.north_tech_id, parent_id=root.department_id, name="KIP", code="KIP"
        )
    )
    grandchild = await org.create_department(
        DepartmentCreate(
            service_id=world.north_tech_id, parent_id=child.department_id, name="Sensors", code="SNS"
        )
    )

    assert (root.level, child.level, grandchild.level) == (1, 2, 3)

    # Re-rooting the child lifts its subtree
    await org.update_department(child.department_id, DepartmentUpdate(parent_id=None))
    assert (child.level, grandchild.level) == (1, 2)


async def test_department_cannot_move_under_its_descendant(db, world):
    org = OrgStructureService(db)
    root = await org.create_department(
        DepartmentCreate(service_id=world.north_tech_id, name="Repair", code="REP")
    )
    child = await org.create_department(
        DepartmentCreate(
            service_id=world.north_tech_id, parent_id=root.department_id, name="Welding", code="WLD"
        )
    )

    with pytest.raises(ValidationFailedError):
        await org.update_department(
            root.department_id, DepartmentUpdate(parent_id=child.department_id)
        )


async def test_department_parent_must_share_service(db, world):
    org = OrgStructureService(db)
    other = await org.create_department(
        DepartmentCreate(service_id=world.north_oper_id, name="Dispatch", code="DSP")
    )

    with pytest.raises(ValidationFailedError):
        await org.create_department(
            DepartmentCreate(
                service_id=world.north_tech_id, parent_id=other.department_id, name="X", code="X"
            )
        )


async def test_omitted_parent_is_left_alone_on_update(db, world):
    org = OrgStructureService(db)
    root = await org.create_department(
        DepartmentCreate(service_id=world.north_tech_id, name="Root", code="ROOT")
    )
    child = await org.create_department(
        DepartmentCreate(
            service_id=world.north_tech_id, parent_id=root.department_id, name="Child", code="CH"
        )
    )

    await org.update_department(child.department_id, DepartmentUpdate(name="Renamed"))

    assert child.parent_id == root.department_id
    assert child.name == "Renamed"


async def test_department_moved_to_other_service_lands_at_root(db, world):
    org = OrgStructureService(db)
    root = await org.create_department(
        DepartmentCreate(service_id=world.north_tech_id, name="Workshop", code="WSH")
    )
    leaf = await org.create_department(
        DepartmentCreate(
            service_id=world.north_tech_id, parent_id=root.department_id, name="Lathe", code="LTH"
        )
    )

    moved = await org.update_department(
        leaf.department_id, DepartmentUpdate(service_id=world.north_oper_id)
    )

    assert (moved.service_id, moved.parent_id, moved.level) == (world.north_oper_id, None, 1)


async def test_department_with_children_cannot_be_deleted(db, world):
    org = OrgStructureService(db)
    root = await org.create_department(
        DepartmentCreate(service_id=world.north_tech_id, name="Root", code="ROOT")
    )
    await org.create_department(
        DepartmentCreate(
            service_id=world.north_tech_id, parent_id=root.department_id, name="Child", code="CH"
        )
    )

    with pytest.raises(ResourceInUseError) as exc_info:
        await org.delete_department(root.department_id)
    assert exc_info.value.details["references"] == {"child_departments": 1}


async def test_service_in_use_cannot_be_deleted(db, world):
    org = OrgStructureService(db)

    with pytest.raises(ResourceInUseError) as exc_info:
        await org.delete_service(world.north_tech_id)

    references = exc_info.value.details["references"]
    assert references["document_grants"] == 2
    assert references["object_links"] == 1
    assert references["user_grants"] == 2


async def test_unused_umg_and_service_can_be_deleted(db, world):
    org = OrgStructureService(db)
    umg = await org.create_umg(UmgCreate(name="South", code="UMG-SOUTH"))
    service = await org.create_service(ServiceCreate(umg_id=umg.umg_id, name="Tech", code="TECH"))

    with pytest.raises(ResourceInUseError):
        await org.delete_umg(umg.umg_id)

    await org.delete_service(service.service_id)
    await org.delete_umg(umg.umg_id)

    assert [u.code for u in await org.list_umgs()] == ["UMG-EAST", "UMG-NORTH"]


async def test_service_code_is_unique_per_umg(db, world):
    org = OrgStructureService(db)

    # Same code under a different UMG is fine (east already has TECH)
    with pytest.raises(ConflictError):
        await org.create_service(ServiceCreate(umg_id=world.umg_north_id, name="Dup", code="TECH"))


async def test_set_user_access_replaces_grants(db, world):
    org = OrgStructureService(db)

    umg_ids, service_ids = await org.set_user_access(
        world.engineer_id,
        umg_ids=[world.umg_north_id],
        service_ids=[world.north_oper_id, world.north_oper_id],
    )

    assert (umg_ids, service_ids) == ([world.umg_north_id], [world.north_oper_id])
    assert await org.get_user_access(world.engineer_id) == ([world.umg_north_id], [world.north_oper_id])


async def test_grants_are_idempotent(db, world):
    org = OrgStructureService(db)

    await org.grant_service_access(world.engineer_id, world.north_tech_id)
    await org.grant_umg_access(world.engineer_id, world.umg_east_id)

    assert await org.get_user_access(world.engineer_id) == ([world.umg_east_id], [world.north_tech_id])
