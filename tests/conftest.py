from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from quoteversation.core.config import Settings
from quoteversation.db.memory import InMemoryDocumentStore
from quoteversation.db.sessions import InMemorySessionStore
from quoteversation.main import create_app


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        USE_IN_MEMORY_BACKENDS=True,
        METRICS_ENABLED=False,
        RATE_LIMIT_PER_MINUTE=0,
        SESSION_SECRET="test-session-secret-with-enough-bytes-for-hs256",
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def sessions() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def app(settings, store, sessions):
    return create_app(settings, store=store, sessions=sessions)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def register(client: TestClient, username: str) -> tuple[str, dict[str, str]]:
    res = client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": f"{username}@example.com", "password": "pw-" + username},
    )
    assert res.status_code == 201, res.text
    client.cookies.clear()
    body = res.json()
    return body["user"]["uid"], {"Authorization": f"Bearer {body['token']}"}


def seed_user(store: InMemoryDocumentStore, username: str) -> ObjectId:
    return asyncio.run(
        store.insert_user({"username": username, "email": f"{username}@example.com", "password": "x"})
    )


def seed_post(
    store: InMemoryDocumentStore,
    author: ObjectId,
    quote: str,
    source: str,
    posted: datetime,
) -> ObjectId:
    return asyncio.run(
        store.insert_post(
            {
                "quote": quote,
                "author": author,
                "date_posted": posted.replace(tzinfo=timezone.utc),
                "source": {"text": source, "link": ""},
                "likes": [],
                "bookmarks": [],
                "comments": [],
            }
        )
    )
