from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware

from quoteversation.core.config import Settings
from quoteversation.services.auth import decode_session_token

logger = logging.getLogger(__name__)


class RedisRateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, redis_client: Redis, limit_per_minute: int, settings: Settings):
        super().__init__(app)
        self.redis_client = redis_client
        self.limit_per_minute = limit_per_minute
        self.settings = settings

    def _resolve_subject(self, request: Request) -> str:
        """
        Prefer the session id of a valid token so clients behind one proxy do
        not share a bucket. Tokens that do not verify fall back to the IP.
        """
        token = ""
        auth = (request.headers.get("authorization") or "").strip()
        if auth.lower().startswith("bearer "):
            token = auth[7:].strip()
        if not token:
            token = (request.cookies.get(self.settings.session_cookie_name) or "").strip()
        if token:
            session_id = decode_session_token(self.settings, token)
            if session_id is not None:
                return f"sid:{session_id}"

        forwarded = (request.headers.get("x-forwarded-for") or "").strip()
        if forwarded:
            return f"ip:{forwarded.split(',')[0].strip()}"

        real_ip = (request.headers.get("x-real-ip") or "").strip()
        if real_ip:
            return f"ip:{real_ip}"

        ip = request.client.host if request.client else "unknown"
        return f"ip:{ip}"

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable]):
        if self.limit_per_minute <= 0:
            return await call_next(request)
        if request.url.path.startswith("/health") or request.url.path.startswith("/metrics"):
            return await call_next(request)

        subject = self._resolve_subject(request)
        minute_bucket = int(time.time() // 60)
        key = f"rl:{subject}:{minute_bucket}"

        try:
            count = await self.redis_client.incr(key)
            if count == 1:
                await self.redis_client.expire(key, 65)
            if count > self.limit_per_minute:
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Rate limit exceeded"},
                    headers={"Retry-After": "60"},
                )
        except RedisError:
            # Fail open when Redis is unavailable.
            logger.warning("Rate limiter unavailable; letting request through", exc_info=True)

        return await call_next(request)
