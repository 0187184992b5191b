# pipeline_docs/db/schemas/search_schemas.py
from typing import List
from pydantic import BaseModel, Field
from .document_schemas import DocumentResponse


class SearchHitResponse(DocumentResponse):
    rank: float = 0.0
    # Fragments wrapped in <mark>...</mark>; empty on the substring fallback
    highlight: str = ""


class SearchPageResponse(BaseModel):
    results: List[SearchHitResponse] = Field(default_factory=list)
    total: int = 0
    limit: int
    offset: int
    has_more: bool = False


__all__ = ["SearchHitResponse", "SearchPageResponse"]
