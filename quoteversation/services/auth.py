from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import jwt

from quoteversation.core.config import Settings
from quoteversation.core.errors import AuthenticationRequired
from quoteversation.db.sessions import SessionUser

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class RequestContext:
    """Identity of the caller, resolved once per request and passed explicitly."""

    user: SessionUser | None = None
    session_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def require_user(self) -> SessionUser:
        if self.user is None:
            raise AuthenticationRequired()
        return self.user


def encode_session_token(settings: Settings, session_id: str, user: SessionUser) -> str:
    now = int(time.time())
    payload = {
        "sid": session_id,
        "sub": user.uid,
        "iat": now,
        "exp": now + settings.session_ttl_seconds,
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_session_token(settings: Settings, token: str) -> str | None:
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.session_algorithm],
        )
    except jwt.PyJWTError:
        logger.debug("Rejected session token")
        return None
    sid = payload.get("sid")
    return str(sid) if sid else None
