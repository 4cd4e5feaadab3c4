from __future__ import annotations

import logging
from typing import Any

from bson import ObjectId
from pymongo import ASCENDING, AsyncMongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError

from quoteversation.db.store import POSTS_COLLECTION, USERS_COLLECTION, DuplicateUserError

logger = logging.getLogger(__name__)


class MongoDocumentStore:
    def __init__(self, uri: str, database: str, client: AsyncMongoClient | None = None):
        self.client = client or AsyncMongoClient(uri, tz_aware=True, connect=False)
        self.db = self.client[database]
        self.posts = self.db[POSTS_COLLECTION]
        self.users = self.db[USERS_COLLECTION]

    async def ensure_indexes(self) -> None:
        # Registration checks are read-then-write; the unique indexes close the race.
        await self.users.create_index([("username", ASCENDING)], unique=True, name="uq_users_username")
        await self.users.create_index([("email", ASCENDING)], unique=True, name="uq_users_email")
        await self.posts.create_index([("date_posted", ASCENDING)], name="ix_posts_date_posted")

    async def aggregate_posts(self, stages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        cursor = await self.posts.aggregate(stages)
        return await cursor.to_list()

    async def find_post(self, post_id: ObjectId) -> dict[str, Any] | None:
        return await self.posts.find_one({"_id": post_id})

    async def insert_post(self, doc: dict[str, Any]) -> ObjectId:
        result = await self.posts.insert_one(doc)
        return result.inserted_id

    async def update_post(self, post_id: ObjectId, fields: dict[str, Any]) -> dict[str, Any] | None:
        return await self.posts.find_one_and_update(
            {"_id": post_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_post(self, post_id: ObjectId) -> bool:
        result = await self.posts.delete_one({"_id": post_id})
        return result.deleted_count == 1

    async def add_like(self, post_id: ObjectId, user_id: ObjectId) -> list[ObjectId] | None:
        doc = await self.posts.find_one_and_update(
            {"_id": post_id, "likes": {"$ne": user_id}},
            {"$push": {"likes": user_id}},
            projection={"likes": 1},
            return_document=ReturnDocument.AFTER,
        )
        return None if doc is None else list(doc.get("likes") or [])

    async def remove_like(self, post_id: ObjectId, user_id: ObjectId) -> list[ObjectId] | None:
        doc = await self.posts.find_one_and_update(
            {"_id": post_id, "likes": user_id},
            {"$pull": {"likes": user_id}},
            projection={"likes": 1},
            return_document=ReturnDocument.AFTER,
        )
        return None if doc is None else list(doc.get("likes") or [])

    async def find_user(self, user_id: ObjectId) -> dict[str, Any] | None:
        return await self.users.find_one({"_id": user_id})

    async def find_user_by_login(self, username_or_email: str) -> dict[str, Any] | None:
        return await self.users.find_one(
            {"$or": [{"username": username_or_email}, {"email": username_or_email}]}
        )

    async def find_user_by_field(self, field: str, value: str) -> dict[str, Any] | None:
        return await self.users.find_one({field: value})

    async def insert_user(self, doc: dict[str, Any]) -> ObjectId:
        try:
            result = await self.users.insert_one(doc)
        except DuplicateKeyError as exc:
            key = (exc.details or {}).get("keyPattern") or {}
            field = "email" if "email" in key else "username"
            logger.warning("Duplicate %s rejected by unique index", field)
            raise DuplicateUserError(field) from exc
        return result.inserted_id

    async def close(self) -> None:
        await self.client.close()
