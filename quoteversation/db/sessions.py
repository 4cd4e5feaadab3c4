from __future__ import annotations

import json
import secrets
import time
from dataclasses import asdict, dataclass
from typing import Protocol

from redis.asyncio import Redis


@dataclass(slots=True)
class SessionUser:
    uid: str
    username: str
    email: str


class SessionStore(Protocol):
    async def create(self, user: SessionUser, ttl_seconds: int) -> str:
        ...

    async def get(self, session_id: str) -> SessionUser | None:
        ...

    async def destroy(self, session_id: str) -> None:
        ...


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class RedisSessionStore:
    def __init__(self, client: Redis, key_prefix: str = "sess:"):
        self.client = client
        self.key_prefix = key_prefix

    def _key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"

    async def create(self, user: SessionUser, ttl_seconds: int) -> str:
        session_id = new_session_id()
        await self.client.set(self._key(session_id), json.dumps(asdict(user)), ex=ttl_seconds)
        return session_id

    async def get(self, session_id: str) -> SessionUser | None:
        raw = await self.client.get(self._key(session_id))
        if not raw:
            return None
        return SessionUser(**json.loads(raw))

    async def destroy(self, session_id: str) -> None:
        await self.client.delete(self._key(session_id))


class InMemorySessionStore:
    def __init__(self):
        self.sessions: dict[str, tuple[SessionUser, float]] = {}

    async def create(self, user: SessionUser, ttl_seconds: int) -> str:
        session_id = new_session_id()
        self.sessions[session_id] = (user, time.time() + ttl_seconds)
        return session_id

    async def get(self, session_id: str) -> SessionUser | None:
        entry = self.sessions.get(session_id)
        if entry is None:
            return None
        user, expires_at = entry
        if expires_at <= time.time():
            self.sessions.pop(session_id, None)
            return None
        return user

    async def destroy(self, session_id: str) -> None:
        self.sessions.pop(session_id, None)
