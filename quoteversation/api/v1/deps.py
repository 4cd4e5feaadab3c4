from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from quoteversation.core.config import Settings
from quoteversation.db.sessions import SessionStore
from quoteversation.db.store import DocumentStore
from quoteversation.services.auth import RequestContext, decode_session_token

bearer = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def _presented_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
    settings: Settings,
) -> str | None:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name) or None


async def get_request_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    settings: Settings = Depends(get_app_settings),
    sessions: SessionStore = Depends(get_sessions),
) -> RequestContext:
    token = _presented_token(request, credentials, settings)
    if not token:
        return RequestContext()
    session_id = decode_session_token(settings, token)
    if session_id is None:
        return RequestContext()
    user = await sessions.get(session_id)
    if user is None:
        return RequestContext()
    return RequestContext(user=user, session_id=session_id)
