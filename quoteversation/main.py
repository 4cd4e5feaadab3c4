from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from redis.asyncio import Redis

from quoteversation.api.v1.router import api_router
from quoteversation.core.config import Settings, get_settings
from quoteversation.core.logging import configure_logging
from quoteversation.db.memory import InMemoryDocumentStore
from quoteversation.db.mongo import MongoDocumentStore
from quoteversation.db.redis import create_redis_client
from quoteversation.db.sessions import InMemorySessionStore, RedisSessionStore, SessionStore
from quoteversation.db.store import DocumentStore
from quoteversation.middleware.rate_limit import RedisRateLimitMiddleware

logger = logging.getLogger(__name__)


def _build_store(settings: Settings) -> DocumentStore:
    if settings.use_in_memory_backends:
        return InMemoryDocumentStore()
    return MongoDocumentStore(settings.mongodb_uri, settings.mongodb_database)


async def _internal_error(request: Request, exc: Exception) -> ORJSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return ORJSONResponse(status_code=500, content={"detail": "Internal Server Error"})


def create_app(
    settings: Settings | None = None,
    *,
    store: DocumentStore | None = None,
    sessions: SessionStore | None = None,
    redis_client: Redis | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if redis_client is None and not settings.use_in_memory_backends:
        redis_client = create_redis_client(settings.redis_url)
    if sessions is None:
        sessions = RedisSessionStore(redis_client) if redis_client is not None else InMemorySessionStore()
    if store is None:
        store = _build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if isinstance(app.state.store, MongoDocumentStore):
            await app.state.store.ensure_indexes()
        yield
        await app.state.store.close()
        if redis_client is not None:
            await redis_client.aclose()

    app = FastAPI(
        title=settings.app_name,
        default_response_class=ORJSONResponse,
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.sessions = sessions

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if redis_client is not None and settings.rate_limit_per_minute > 0:
        app.add_middleware(
            RedisRateLimitMiddleware,
            redis_client=redis_client,
            limit_per_minute=settings.rate_limit_per_minute,
            settings=settings,
        )
    app.add_exception_handler(Exception, _internal_error)

    app.include_router(api_router, prefix=settings.api_prefix)

    if settings.metrics_enabled:
        Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
