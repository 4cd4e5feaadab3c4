"""
Document store interface shared by the Mongo and in-memory backends.

Documents are plain dicts shaped like the stored records; ids are ObjectIds.
"""

from __future__ import annotations

from typing import Any, Protocol

from bson import ObjectId
from bson.errors import InvalidId


POSTS_COLLECTION = "posts"
USERS_COLLECTION = "users"


class DuplicateUserError(Exception):
    def __init__(self, field: str) -> None:
        super().__init__(f"duplicate {field}")
        self.field = field


class DocumentStore(Protocol):
    async def aggregate_posts(self, stages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        ...

    async def find_post(self, post_id: ObjectId) -> dict[str, Any] | None:
        ...

    async def insert_post(self, doc: dict[str, Any]) -> ObjectId:
        ...

    async def update_post(self, post_id: ObjectId, fields: dict[str, Any]) -> dict[str, Any] | None:
        ...

    async def delete_post(self, post_id: ObjectId) -> bool:
        ...

    # Like mutations are conditional: they return the new like list, or None
    # when the post is missing or the like state already matches.
    async def add_like(self, post_id: ObjectId, user_id: ObjectId) -> list[ObjectId] | None:
        ...

    async def remove_like(self, post_id: ObjectId, user_id: ObjectId) -> list[ObjectId] | None:
        ...

    async def find_user(self, user_id: ObjectId) -> dict[str, Any] | None:
        ...

    async def find_user_by_login(self, username_or_email: str) -> dict[str, Any] | None:
        ...

    async def find_user_by_field(self, field: str, value: str) -> dict[str, Any] | None:
        ...

    async def insert_user(self, doc: dict[str, Any]) -> ObjectId:
        ...

    async def close(self) -> None:
        ...


def parse_object_id(raw: str | None) -> ObjectId | None:
    if not raw:
        return None
    try:
        return ObjectId(str(raw))
    except (InvalidId, TypeError):
        return None
