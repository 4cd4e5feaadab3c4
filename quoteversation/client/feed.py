"""
Local feed state with optimistic updates.

Every speculative change runs inside ``FeedState.optimistic()``: the post list
is snapshotted, the change is applied immediately, and the snapshot is
restored if the server call raises. On success the helpers overwrite the
speculative values with what the server returned.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from quoteversation.client.api import QuoteversationClient
from quoteversation.schemas.post import PostOut


class FeedState:
    def __init__(self, posts: list[PostOut] | None = None):
        self.posts: list[PostOut] = list(posts or [])

    def get(self, post_id: str) -> PostOut:
        for post in self.posts:
            if post.id == post_id:
                return post
        raise KeyError(post_id)

    def snapshot(self) -> list[PostOut]:
        return [p.model_copy(deep=True) for p in self.posts]

    def restore(self, snapshot: list[PostOut]) -> None:
        self.posts = snapshot

    def replace_all(self, posts: list[PostOut]) -> None:
        self.posts = list(posts)

    def upsert(self, post: PostOut) -> None:
        for i, existing in enumerate(self.posts):
            if existing.id == post.id:
                self.posts[i] = post
                return
        self.posts.append(post)

    def remove(self, post_id: str) -> None:
        self.posts = [p for p in self.posts if p.id != post_id]

    def set_likes(self, post_id: str, likes: list[str]) -> None:
        self.get(post_id).likes = list(likes)

    @asynccontextmanager
    async def optimistic(self) -> AsyncIterator["FeedState"]:
        snapshot = self.snapshot()
        try:
            yield self
        except BaseException:
            self.restore(snapshot)
            raise


async def refresh(client: QuoteversationClient, feed: FeedState, **filters) -> None:
    feed.replace_all(await client.fetch_posts(**filters))


async def toggle_like(client: QuoteversationClient, feed: FeedState, post_id: str, user_id: str) -> None:
    current = feed.get(post_id).likes
    liked = user_id in current
    async with feed.optimistic():
        if liked:
            feed.set_likes(post_id, [x for x in current if x != user_id])
            confirmed = await client.unlike(post_id)
        else:
            feed.set_likes(post_id, [*current, user_id])
            confirmed = await client.like(post_id)
        feed.set_likes(post_id, confirmed.likes)


async def edit_post(
    client: QuoteversationClient,
    feed: FeedState,
    post_id: str,
    *,
    quote: str | None = None,
    source_text: str | None = None,
    source_link: str | None = None,
) -> None:
    async with feed.optimistic():
        post = feed.get(post_id)
        if quote is not None:
            post.quote = quote
        if source_text is not None:
            post.source.text = source_text
        if source_link is not None:
            post.source.link = source_link
        updated = await client.update_post(
            post_id, quote=quote, source_text=source_text, source_link=source_link
        )
        feed.upsert(updated)


async def remove_post(client: QuoteversationClient, feed: FeedState, post_id: str) -> None:
    async with feed.optimistic():
        feed.remove(post_id)
        await client.delete_post(post_id)


async def add_post(
    client: QuoteversationClient,
    feed: FeedState,
    quote: str,
    source_text: str = "",
    source_link: str = "",
) -> PostOut:
    # Ids and timestamps come from the server, so creation is not speculative.
    created = await client.create_post(quote, source_text, source_link)
    feed.upsert(created)
    return created
