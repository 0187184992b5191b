# pipeline_docs/services/v1/document_search_service.py
"""
Scoped document search.

PostgreSQL: full-text match on documents.search_vector, ranked with
ts_rank_cd and highlighted with ts_headline. When the query reduces to no
lexemes (stop words only) or the database has no full-text support, search
falls back to trigram similarity plus substring matching on the name and
file name.

Visibility and facets are built by one function shared with the count, so
a page and its total always agree.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    ColumnElement,
    and_,
    distinct,
    func,
    literal,
    literal_column,
    or_,
    select,
)
from sqlalchemy.ext.asyncio import AsyncSession

from common import SearchConfig, logger
from pipeline_docs.db.models import Document
from .access_query_service import document_visible_clause
from .permission_resolver import PermissionResolver

# Replaced by spaces before the query reaches the database
_UNSAFE_CHARS = re.compile(r"[!@#$%^&*()+=\[\]{};:'\"\\|,.<>?]")

MIN_QUERY_LENGTH = 2

HEADLINE_OPTIONS = "StartSel=<mark>, StopSel=</mark>, MaxFragments=2, MinWords=5, MaxWords=15"


class SearchStrategy(str, Enum):
    FULL_TEXT = "full_text"
    FALLBACK = "fallback"


@dataclass
class SearchFilters:
    query: str
    user_id: str
    category_id: Optional[str] = None
    object_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    tags: list[str] = field(default_factory=list)
    limit: Optional[int] = 20
    offset: int = 0


@dataclass
class SearchHit:
    document: Document
    rank: float
    highlight: str


@dataclass
class _PreparedSearch:
    query: str
    scope: frozenset[str]
    strategy: SearchStrategy


class DocumentSearchService:
    def __init__(
        self,
        db: AsyncSession,
        resolver: Optional[PermissionResolver] = None,
        config: Optional[SearchConfig] = None,
    ):
        self.db = db
        self.resolver = resolver or PermissionResolver(db)
        self.config = config or SearchConfig()

    @staticmethod
    def sanitize_query(raw: str) -> str:
        return _UNSAFE_CHARS.sub(" ", raw or "").strip()

    @property
    def dialect_name(self) -> str:
        return self.db.get_bind().dialect.name

    async def search_documents(self, filters: SearchFilters) -> list[SearchHit]:
        prepared = await self._prepare(filters)
        if prepared is None:
            return []

        rank, highlight = self._rank_and_highlight(prepared)
        rank = rank.label("search_rank")
        query = (
            select(Document, rank, highlight.label("highlight"))
            .where(*self._where(prepared, filters))
            .order_by(rank.desc(), Document.created_at.desc(), Document.document_id)
            .offset(filters.offset)
            .execution_options(logging_token="DocumentSearchService.search_documents")
        )
        if filters.limit is not None:
            query = query.limit(filters.limit)

        result = await self.db.execute(query)
        hits = [
            SearchHit(document=doc, rank=float(row_rank or 0.0), highlight=row_highlight or "")
            for doc, row_rank, row_highlight in result.all()
        ]

        logger.debug(
            "Document search",
            strategy=prepared.strategy.value,
            scope_size=len(prepared.scope),
            hits=len(hits),
        )
        return hits

    async def search_documents_count(self, filters: SearchFilters) -> int:
        prepared = await self._prepare(filters)
        if prepared is None:
            return 0

        query = select(func.count(distinct(Document.document_id))).where(
            *self._where(prepared, filters)
        )
        return int(await self.db.scalar(query) or 0)

    async def _prepare(self, filters: SearchFilters) -> Optional[_PreparedSearch]:
        query = self.sanitize_query(filters.query)
        if len(query) < MIN_QUERY_LENGTH:
            return None

        scope = await self.resolver.get_user_scope(filters.user_id)
        if not scope:
            return None

        return _PreparedSearch(
            query=query,
            scope=scope,
            strategy=await self._choose_strategy(query),
        )

    async def _choose_strategy(self, query: str) -> SearchStrategy:
        if self.dialect_name != "postgresql":
            return SearchStrategy.FALLBACK

        lexemes = await self.db.scalar(select(func.numnode(self._tsquery(query))))
        if not lexemes:
            return SearchStrategy.FALLBACK
        return SearchStrategy.FULL_TEXT

    def _regconfig(self):
        # language is restricted to [a-z_]+ by SearchConfig
        return literal_column(f"'{self.config.language}'::regconfig")

    def _tsquery(self, query: str):
        return func.plainto_tsquery(self._regconfig(), query)

    def _match(self, prepared: _PreparedSearch) -> ColumnElement[bool]:
        if prepared.strategy is SearchStrategy.FULL_TEXT:
            return Document.search_vector.op("@@")(self._tsquery(prepared.query))

        conditions = [
            Document.name.icontains(prepared.query, autoescape=True),
            Document.file_name.icontains(prepared.query, autoescape=True),
        ]
        if self.dialect_name == "postgresql":
            conditions.insert(
                0,
                func.similarity(Document.name, prepared.query)
                > self.config.similarity_threshold,
            )
        return or_(*conditions)

    def _rank_and_highlight(self, prepared: _PreparedSearch) -> tuple[Any, Any]:
        if prepared.strategy is SearchStrategy.FULL_TEXT:
            tsquery = self._tsquery(prepared.query)
            rank = func.ts_rank_cd(Document.search_vector, tsquery)
            highlight = func.ts_headline(
                self._regconfig(),
                func.coalesce(Document.text_content, Document.name),
                tsquery,
                HEADLINE_OPTIONS,
            )
            return rank, highlight

        if self.dialect_name == "postgresql":
            rank = func.similarity(Document.name, prepared.query)
        else:
            rank = literal(0.0)
        return rank, literal("")

    def _tags_overlap(self, tags: list[str]) -> ColumnElement[bool]:
        if self.dialect_name == "postgresql":
            return Document.tags.overlap(tags)

        tag_values = func.json_each(Document.tags).table_valued("value")
        return (
            select(literal(1))
            .select_from(tag_values)
            .where(tag_values.c.value.in_(tags))
            .exists()
        )

    def _where(
        self,
        prepared: _PreparedSearch,
        filters: SearchFilters,
    ) -> list[ColumnElement[bool]]:
        clauses: list[ColumnElement[bool]] = [
            document_visible_clause(prepared.scope),
            self._match(prepared),
        ]

        if filters.category_id:
            clauses.append(Document.category_id == filters.category_id)
        if filters.object_id:
            clauses.append(Document.object_id == filters.object_id)
        # A single bound is ignored
        if filters.date_from is not None and filters.date_to is not None:
            clauses.append(
                and_(
                    Document.created_at >= filters.date_from,
                    Document.created_at <= filters.date_to,
                )
            )
        if filters.tags:
            clauses.append(self._tags_overlap(filters.tags))

        return clauses


__all__ = [
    "DocumentSearchService",
    "SearchFilters",
    "SearchHit",
    "SearchStrategy",
    "MIN_QUERY_LENGTH",
]
