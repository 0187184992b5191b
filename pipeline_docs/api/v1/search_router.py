# pipeline_docs/api/v1/search_router.py
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from common import get_config
from pipeline_docs.api.deps import get_permission_resolver, require_permission
from pipeline_docs.db import get_db
from pipeline_docs.db.schemas import DocumentResponse, SearchHitResponse, SearchPageResponse
from pipeline_docs.services.v1 import (
    Action,
    DocumentSearchService,
    Module,
    PermissionResolver,
    SearchFilters,
)

search_router = APIRouter(
    prefix="/search",
    tags=["Search"],
)


@search_router.get(
    "/documents",
    response_model=SearchPageResponse,
    status_code=status.HTTP_200_OK,
    summary="Full-text search over documents visible to the caller",
    description="""
    Queries shorter than two characters (after removing punctuation) return
    an empty page. The date range applies only when both bounds are given;
    tags match when any of them is present on the document.

    **Database Impact:** scope lookup, one page query and one count query.
    """,
    responses={422: {"description": "Query too long or invalid parameters"}},
)
async def search_documents(
    q: str = Query(..., description="Search text"),
    category_id: Optional[str] = Query(None),
    object_id: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    tags: Optional[List[str]] = Query(None, description="Match any of these tags"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(require_permission(Module.DOCUMENTS, Action.VIEW)),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    db: AsyncSession = Depends(get_db),
):
    search_config = get_config().search
    if len(q) > search_config.max_query_length:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Query must be at most {search_config.max_query_length} characters",
        )

    page_size = limit or search_config.default_limit
    filters = SearchFilters(
        query=q,
        user_id=user_id,
        category_id=category_id,
        object_id=object_id,
        date_from=date_from,
        date_to=date_to,
        tags=tags or [],
        limit=page_size,
        offset=offset,
    )

    service = DocumentSearchService(db, resolver, search_config)
    hits = await service.search_documents(filters)
    total = await service.search_documents_count(filters)

    return SearchPageResponse(
        results=[
            SearchHitResponse(
                **DocumentResponse.model_validate(hit.document).model_dump(),
                rank=hit.rank,
                highlight=hit.highlight,
            )
            for hit in hits
        ],
        total=total,
        limit=page_size,
        offset=offset,
        has_more=offset + len(hits) < total,
    )


__all__ = ["search_router"]
