from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status

from quoteversation.api.v1.deps import get_app_settings, get_request_context, get_store
from quoteversation.core.config import Settings
from quoteversation.db.store import DocumentStore
from quoteversation.schemas.post import LikeIn, LikesOut, PostCreate, PostOut, PostUpdate, SearchRequest
from quoteversation.services import posts as post_service
from quoteversation.services.auth import RequestContext

router = APIRouter(prefix="/posts", tags=["posts"])

_DIRECTIONS = {"1": 1, "asc": 1, "-1": -1, "desc": -1}


def _parse_sort(entries: list[str]) -> dict[str, int] | None:
    out: dict[str, int] = {}
    for entry in entries:
        field, sep, direction = entry.partition(":")
        field = field.strip()
        key = direction.strip().lower()
        if not sep or not field or key not in _DIRECTIONS:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Invalid sort entry '{entry}', expected field:1|-1|asc|desc",
            )
        out[field] = _DIRECTIONS[key]
    return out or None


@router.get("", response_model=list[PostOut])
async def list_posts(
    term: str | None = Query(default=None),
    date_lower: datetime | None = Query(default=None),
    date_upper: datetime | None = Query(default=None),
    source: str | None = Query(default=None),
    sort: list[str] = Query(default=[]),
    skip: int = Query(default=0, ge=0),
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_app_settings),
) -> list[PostOut]:
    request = SearchRequest(
        term=term,
        date_lower=date_lower,
        date_upper=date_upper,
        source=source,
        sort=_parse_sort(sort),
        skip=skip,
    )
    return await post_service.list_posts(store, request, index_name=settings.search_index_name)


@router.post("", response_model=PostOut, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostCreate,
    store: DocumentStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> PostOut:
    return await post_service.create_post(store, ctx, payload)


@router.patch("/{post_id}", response_model=PostOut)
async def update_post(
    post_id: str,
    payload: PostUpdate,
    store: DocumentStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> PostOut:
    return await post_service.update_post(store, ctx, post_id, payload)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    store: DocumentStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> Response:
    await post_service.delete_post(store, ctx, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/like", response_model=LikesOut, status_code=status.HTTP_201_CREATED)
async def like_post(
    post_id: str,
    payload: LikeIn | None = Body(default=None),
    store: DocumentStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> LikesOut:
    return await post_service.like_post(store, ctx, post_id, payload.user_id if payload else None)


@router.delete("/{post_id}/like", response_model=LikesOut)
async def unlike_post(
    post_id: str,
    payload: LikeIn | None = Body(default=None),
    store: DocumentStore = Depends(get_store),
    ctx: RequestContext = Depends(get_request_context),
) -> LikesOut:
    return await post_service.unlike_post(store, ctx, post_id, payload.user_id if payload else None)
