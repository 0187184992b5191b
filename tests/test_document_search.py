"""
Document search on SQLite, which always takes the fallback strategy
(substring match on name and file name, rank 0).
"""
from datetime import datetime, timedelta, timezone

import pytest

from common import AccessConfig
from pipeline_docs.services.v1 import (
    DocumentSearchService,
    OrgStructureService,
    PermissionResolver,
    SearchFilters,
)


def _ids(hits):
    return [hit.document.document_id for hit in hits]


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("pump", "pump"),
        ("  pump!!! ", "pump"),
        ("a'b\"c;d", "a b c d"),
        ("(select*)", "select"),
        ("", ""),
    ],
)
def test_sanitize_query(raw, expected):
    assert DocumentSearchService.sanitize_query(raw) == expected


async def test_short_query_returns_empty_page(db, world):
    service = DocumentSearchService(db)

    for query in ("p", " ! ", "?p?"):
        filters = SearchFilters(query=query, user_id=world.admin_id)
        assert await service.search_documents(filters) == []
        assert await service.search_documents_count(filters) == 0


async def test_matches_name_within_scope(db, world):
    service = DocumentSearchService(db)

    hits = await service.search_documents(SearchFilters(query="manual", user_id=world.admin_id))

    assert _ids(hits) == [world.documents["pump-manual"]]
    assert hits[0].rank == 0.0
    assert hits[0].highlight == ""


async def test_out_of_scope_and_non_viewable_documents_never_match(db, world):
    service = DocumentSearchService(db)

    # "report" only matches hidden-report, granted without can_view
    assert await service.search_documents(SearchFilters(query="report", user_id=world.admin_id)) == []
    # engineer only sees north TECH
    hits = await service.search_documents(SearchFilters(query="pdf", user_id=world.engineer_id))
    assert _ids(hits) == [world.documents["pump-manual"]]


async def test_user_without_scope_gets_nothing(db, world):
    service = DocumentSearchService(db)
    filters = SearchFilters(query="pdf", user_id=world.outsider_id)

    assert await service.search_documents(filters) == []
    assert await service.search_documents_count(filters) == 0


async def test_document_granted_twice_appears_once(db, world):
    service = DocumentSearchService(db)
    filters = SearchFilters(query="pump", user_id=world.admin_id)

    hits = await service.search_documents(filters)

    assert _ids(hits) == [world.documents["pump-manual"]]
    assert await service.search_documents_count(filters) == 1


async def test_count_matches_unpaged_results(db, world):
    service = DocumentSearchService(db)
    filters = SearchFilters(query="pdf", user_id=world.admin_id, limit=None)

    hits = await service.search_documents(filters)

    assert len(hits) == 3
    assert await service.search_documents_count(filters) == 3


async def test_paging_walks_all_results_without_overlap(db, world):
    service = DocumentSearchService(db)

    seen = []
    for offset in range(3):
        page = await service.search_documents(
            SearchFilters(query="pdf", user_id=world.admin_id, limit=1, offset=offset)
        )
        seen.extend(_ids(page))

    assert len(seen) == 3
    assert len(set(seen)) == 3


async def test_tag_filter_matches_any_tag(db, world):
    service = DocumentSearchService(db)

    hits = await service.search_documents(
        SearchFilters(query="pdf", user_id=world.admin_id, tags=["valve", "drawing"])
    )

    assert set(_ids(hits)) == {world.documents["valve-passport"], world.documents["east-drawing"]}


async def test_two_character_query_follows_new_grant(db, world):
    service = DocumentSearchService(db)
    filters = SearchFilters(query="pu", user_id=world.outsider_id)
    assert await service.search_documents(filters) == []

    await OrgStructureService(db).grant_service_access(world.outsider_id, world.north_tech_id)
    await db.flush()

    assert _ids(await service.search_documents(filters)) == [world.documents["pump-manual"]]
    assert await service.search_documents_count(filters) == 1


async def test_empty_tag_list_is_no_tag_filter(db, world):
    service = DocumentSearchService(db)

    untagged = await service.search_documents(SearchFilters(query="pdf", user_id=world.admin_id))
    empty = await service.search_documents(SearchFilters(query="pdf", user_id=world.admin_id, tags=[]))

    assert _ids(empty) == _ids(untagged)
    assert len(empty) == 3


async def test_umg_grants_widen_search_when_enabled(db, world):
    filters = SearchFilters(query="pdf", user_id=world.engineer_id)
    widened = DocumentSearchService(db, PermissionResolver(db, AccessConfig(include_umg_services=True)))

    assert _ids(await DocumentSearchService(db).search_documents(filters)) == [
        world.documents["pump-manual"]
    ]
    assert set(_ids(await widened.search_documents(filters))) == {
        world.documents["pump-manual"],
        world.documents["east-drawing"],
    }


async def test_category_and_object_filters(db, world):
    service = DocumentSearchService(db)

    by_object = await service.search_documents(
        SearchFilters(query="pdf", user_id=world.admin_id, object_id=world.object_id)
    )
    by_other_category = await service.search_documents(
        SearchFilters(query="pdf", user_id=world.admin_id, category_id="no-such-category")
    )

    assert _ids(by_object) == [world.documents["pump-manual"]]
    assert by_other_category == []


async def test_date_range_needs_both_bounds(db, world):
    service = DocumentSearchService(db)
    now = datetime.now(timezone.utc)
    past = now - timedelta(days=30)

    only_from = SearchFilters(query="pdf", user_id=world.admin_id, date_from=now + timedelta(days=1))
    both_past = SearchFilters(
        query="pdf", user_id=world.admin_id, date_from=past, date_to=past + timedelta(days=1)
    )
    around_now = SearchFilters(
        query="pdf",
        user_id=world.admin_id,
        date_from=now - timedelta(days=1),
        date_to=now + timedelta(days=1),
    )

    assert await service.search_documents_count(only_from) == 3
    assert await service.search_documents_count(both_past) == 0
    assert await service.search_documents_count(around_now) == 3


async def test_like_wildcards_in_query_are_literal(db, world):
    service = DocumentSearchService(db)

    assert await service.search_documents(SearchFilters(query="%%", user_id=world.admin_id)) == []
    assert await service.search_documents(SearchFilters(query="__", user_id=world.admin_id)) == []
