import asyncio

import pytest
from pymongo.errors import DuplicateKeyError

from quoteversation.db.mongo import MongoDocumentStore
from quoteversation.db.store import DuplicateUserError


class RejectingUsers:
    """Stands in for the users collection when a unique index rejects the insert."""

    def __init__(self, key_pattern: dict[str, int]):
        self.key_pattern = key_pattern

    async def insert_one(self, doc):
        raise DuplicateKeyError("E11000 duplicate key error", code=11000, details={"keyPattern": self.key_pattern})


def _store(key_pattern: dict[str, int]) -> MongoDocumentStore:
    client = {"quoteversation": {"posts": object(), "users": RejectingUsers(key_pattern)}}
    return MongoDocumentStore("mongodb://unused", "quoteversation", client=client)


@pytest.mark.parametrize("key_pattern, field", [({"email": 1}, "email"), ({"username": 1}, "username")])
def test_unique_index_violation_names_the_field(key_pattern, field) -> None:
    store = _store(key_pattern)
    with pytest.raises(DuplicateUserError) as excinfo:
        asyncio.run(store.insert_user({"username": "ada", "email": "ada@example.com", "password": "x"}))
    assert excinfo.value.field == field
