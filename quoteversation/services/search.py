"""
Builds the aggregation stages for the post listing/search endpoint.

The stage order is always ``[$search?, $sort, $limit, $skip]``. The ``$search``
stage is only emitted when at least one filter (term, date bound, source) is
present; the free-text term is a boost-only ``should`` clause while source and
date range are restrictive ``must`` clauses.
"""

from __future__ import annotations

from datetime import timezone
from typing import Any

from quoteversation.schemas.post import SearchRequest

PAGE_SIZE = 20
DEFAULT_SORT: dict[str, int] = {"date_posted": -1}
DEFAULT_INDEX_NAME = "postsIndex"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _utc(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _search_stage(request: SearchRequest, index_name: str) -> dict[str, Any] | None:
    term = _clean(request.term)
    source = _clean(request.source)
    date_lower = _utc(request.date_lower)
    date_upper = _utc(request.date_upper)
    if not (term or source or date_lower or date_upper):
        return None

    must: list[dict[str, Any]] = []
    should: list[dict[str, Any]] = []
    if source:
        must.append({"text": {"query": source, "path": "source.text"}})
    if date_lower or date_upper:
        date_range: dict[str, Any] = {"path": "date_posted"}
        if date_lower:
            date_range["gte"] = date_lower
        if date_upper:
            date_range["lte"] = date_upper
        must.append({"range": date_range})
    if term:
        should.append({"text": {"query": term, "path": ["quote", "source.text"]}})

    compound: dict[str, Any] = {}
    if must:
        compound["must"] = must
    if should:
        compound["should"] = should
    return {"$search": {"index": index_name, "compound": compound}}


def build_search_stages(request: SearchRequest, *, index_name: str = DEFAULT_INDEX_NAME) -> list[dict[str, Any]]:
    stages: list[dict[str, Any]] = []
    search = _search_stage(request, index_name)
    if search is not None:
        stages.append(search)
    stages.append({"$sort": dict(request.sort) if request.sort else dict(DEFAULT_SORT)})
    stages.append({"$limit": PAGE_SIZE})
    stages.append({"$skip": max(request.skip or 0, 0)})
    return stages
