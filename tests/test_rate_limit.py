from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from quoteversation.main import create_app
from conftest import register


class FakeRedis:
    def __init__(self):
        self.counts: dict[str, int] = {}
        self.expiries: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        self.counts[key] = self.counts.get(key, 0) + 1
        return self.counts[key]

    async def expire(self, key: str, seconds: int) -> None:
        self.expiries[key] = seconds


class DownRedis:
    async def incr(self, key: str) -> int:
        raise RedisConnectionError("redis is down")


def _limited_client(settings, store, sessions, redis_client) -> TestClient:
    limited = settings.model_copy(update={"rate_limit_per_minute": 2})
    return TestClient(create_app(limited, store=store, sessions=sessions, redis_client=redis_client))


def test_requests_over_the_limit_are_rejected(settings, store, sessions) -> None:
    redis = FakeRedis()
    client = _limited_client(settings, store, sessions, redis)

    assert client.get("/api/v1/posts").status_code == 200
    assert client.get("/api/v1/posts").status_code == 200
    res = client.get("/api/v1/posts")
    assert res.status_code == 429
    assert res.headers["Retry-After"] == "60"
    assert list(redis.expiries.values()) == [65]

    assert client.get("/health").status_code == 200


def test_limiter_fails_open(settings, store, sessions) -> None:
    client = _limited_client(settings, store, sessions, DownRedis())
    for _ in range(3):
        assert client.get("/api/v1/posts").status_code == 200


def test_unverified_tokens_share_the_caller_ip_bucket(settings, store, sessions) -> None:
    redis = FakeRedis()
    client = _limited_client(settings, store, sessions, redis)

    for n in range(2):
        assert client.get("/api/v1/posts", headers={"Authorization": f"Bearer junk-{n}"}).status_code == 200
    assert client.get("/api/v1/posts", headers={"Authorization": "Bearer junk-2"}).status_code == 429
    assert all(key.startswith("rl:ip:") for key in redis.counts)


def test_valid_session_gets_its_own_bucket(settings, store, sessions) -> None:
    redis = FakeRedis()
    client = _limited_client(settings, store, sessions, redis)

    _, headers = register(client, "ada")
    assert client.get("/api/v1/posts", headers=headers).status_code == 200
    assert client.get("/api/v1/posts").status_code == 200
    assert {key.split(":")[1] for key in redis.counts} == {"ip", "sid"}
