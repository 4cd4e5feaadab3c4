from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from quoteversation.core.errors import NotFound
from quoteversation.db.store import DocumentStore
from quoteversation.schemas.post import AuthorOut, CommentOut, PostOut, SourceOut

logger = logging.getLogger(__name__)


def as_iso(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.isoformat()


def post_out(doc: dict[str, Any], author: AuthorOut) -> PostOut:
    source = doc.get("source") or {}
    return PostOut(
        id=str(doc["_id"]),
        quote=str(doc.get("quote") or ""),
        author=author,
        date_posted=as_iso(doc.get("date_posted")),
        source=SourceOut(text=str(source.get("text") or ""), link=str(source.get("link") or "")),
        likes=[str(x) for x in (doc.get("likes") or [])],
        bookmarks=[str(x) for x in (doc.get("bookmarks") or [])],
        comments=[
            CommentOut(text=str(c.get("text") or ""), likes=int(c.get("likes") or 0), author=str(c.get("author")))
            for c in (doc.get("comments") or [])
        ],
    )


async def _resolve_author(store: DocumentStore, doc: dict[str, Any]) -> AuthorOut | None:
    user = await store.find_user(doc["author"])
    if user is None:
        return None
    return AuthorOut(id=str(doc["author"]), display_name=str(user.get("username") or ""))


async def enrich_posts(store: DocumentStore, posts: list[dict[str, Any]]) -> list[PostOut]:
    # Join every lookup before raising.
    results = await asyncio.gather(*(_resolve_author(store, doc) for doc in posts), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    authors: list[AuthorOut | None] = list(results)
    missing = [str(doc.get("_id")) for doc, author in zip(posts, authors) if author is None]
    if missing:
        logger.warning("Author lookup missed for posts %s", ", ".join(missing))
        raise NotFound("User info for one of the authors of the list of posts could not be found")
    return [post_out(doc, author) for doc, author in zip(posts, authors)]
