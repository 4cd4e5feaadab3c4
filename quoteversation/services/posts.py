from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId

from quoteversation.core.errors import AuthorizationDenied, Conflict, NotFound, ValidationFailed
from quoteversation.db.store import DocumentStore, parse_object_id
from quoteversation.schemas.post import AuthorOut, LikesOut, PostCreate, PostOut, PostUpdate, SearchRequest
from quoteversation.services.auth import RequestContext
from quoteversation.services.enrich import enrich_posts, post_out
from quoteversation.services.search import DEFAULT_INDEX_NAME, build_search_stages

logger = logging.getLogger(__name__)


async def _load_post(store: DocumentStore, post_id: str) -> tuple[ObjectId, dict[str, Any]]:
    oid = parse_object_id(post_id)
    post = await store.find_post(oid) if oid is not None else None
    if oid is None or post is None:
        raise NotFound("Post could not be found")
    return oid, post


async def _load_owned_post(
    store: DocumentStore, ctx: RequestContext, post_id: str
) -> tuple[ObjectId, dict[str, Any]]:
    me = ctx.require_user()
    oid, post = await _load_post(store, post_id)
    if str(post.get("author")) != me.uid:
        raise AuthorizationDenied()
    return oid, post


def _acting_user_id(ctx: RequestContext, claimed: str | None) -> ObjectId:
    me = ctx.require_user()
    if claimed is not None and claimed != me.uid:
        raise AuthorizationDenied()
    oid = parse_object_id(me.uid)
    if oid is None:
        raise AuthorizationDenied("Session user id is invalid")
    return oid


async def list_posts(
    store: DocumentStore,
    request: SearchRequest,
    *,
    index_name: str = DEFAULT_INDEX_NAME,
) -> list[PostOut]:
    stages = build_search_stages(request, index_name=index_name)
    posts = await store.aggregate_posts(stages)
    return await enrich_posts(store, posts)


async def create_post(store: DocumentStore, ctx: RequestContext, payload: PostCreate) -> PostOut:
    author_id = _acting_user_id(ctx, payload.author_id)
    quote = payload.quote.strip()
    if not quote:
        raise ValidationFailed("Post quote is required")

    doc: dict[str, Any] = {
        "quote": quote,
        "author": author_id,
        "date_posted": datetime.now(timezone.utc),
        "source": {"text": payload.source.text.strip(), "link": payload.source.link.strip()},
        "likes": [],
        "bookmarks": [],
        "comments": [],
    }
    doc["_id"] = await store.insert_post(doc)
    user = ctx.require_user()
    return post_out(doc, AuthorOut(id=user.uid, display_name=user.username))


async def update_post(store: DocumentStore, ctx: RequestContext, post_id: str, payload: PostUpdate) -> PostOut:
    oid, _ = await _load_owned_post(store, ctx, post_id)

    fields: dict[str, Any] = {}
    if payload.quote is not None:
        quote = payload.quote.strip()
        if not quote:
            raise ValidationFailed("Post quote cannot be empty")
        fields["quote"] = quote
    if payload.source_text is not None:
        fields["source.text"] = payload.source_text.strip()
    if payload.source_link is not None:
        fields["source.link"] = payload.source_link.strip()
    if not fields:
        raise ValidationFailed("No fields to update")

    updated = await store.update_post(oid, fields)
    if updated is None:
        raise NotFound("Post could not be found")
    (out,) = await enrich_posts(store, [updated])
    return out


async def delete_post(store: DocumentStore, ctx: RequestContext, post_id: str) -> None:
    oid, _ = await _load_owned_post(store, ctx, post_id)
    if not await store.delete_post(oid):
        raise NotFound("Post could not be found")
    logger.info("Post %s deleted by %s", post_id, ctx.require_user().uid)


async def like_post(
    store: DocumentStore, ctx: RequestContext, post_id: str, user_id: str | None = None
) -> LikesOut:
    liker = _acting_user_id(ctx, user_id)
    oid, _ = await _load_post(store, post_id)
    likes = await store.add_like(oid, liker)
    if likes is None:
        raise Conflict("User has already liked the specified post")
    return LikesOut(post_id=str(oid), likes=[str(x) for x in likes])


async def unlike_post(
    store: DocumentStore, ctx: RequestContext, post_id: str, user_id: str | None = None
) -> LikesOut:
    liker = _acting_user_id(ctx, user_id)
    oid, _ = await _load_post(store, post_id)
    likes = await store.remove_like(oid, liker)
    if likes is None:
        raise Conflict("User has not liked the specified post")
    return LikesOut(post_id=str(oid), likes=[str(x) for x in likes])
