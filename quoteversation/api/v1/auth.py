from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from quoteversation.api.v1.deps import get_app_settings, get_request_context, get_sessions, get_store
from quoteversation.core.config import Settings
from quoteversation.db.sessions import SessionStore, SessionUser
from quoteversation.db.store import DocumentStore
from quoteversation.schemas.auth import AuthOut, LoginIn, RegisterIn, SessionUserOut
from quoteversation.schemas.common import MessageResponse
from quoteversation.services import users as user_service
from quoteversation.services.auth import RequestContext

router = APIRouter(prefix="/auth", tags=["auth"])


def _user_out(user: SessionUser) -> SessionUserOut:
    return SessionUserOut(uid=user.uid, username=user.username, email=user.email)


def _set_session_cookie(response: Response, settings: Settings, token: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        secure=settings.secure_cookies,
        samesite="none" if settings.secure_cookies else "lax",
    )


@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterIn,
    response: Response,
    store: DocumentStore = Depends(get_store),
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
) -> AuthOut:
    user, token = await user_service.register(
        store,
        sessions,
        settings,
        username=payload.username,
        email=payload.email,
        password=payload.password,
    )
    _set_session_cookie(response, settings, token)
    return AuthOut(message="User registered successfully", user=_user_out(user), token=token)


@router.post("/login", response_model=AuthOut)
async def log_in(
    payload: LoginIn,
    response: Response,
    store: DocumentStore = Depends(get_store),
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
) -> AuthOut:
    user, token = await user_service.log_in(
        store,
        sessions,
        settings,
        username_or_email=payload.username_or_email,
        password=payload.password,
    )
    _set_session_cookie(response, settings, token)
    return AuthOut(message="Login successful", user=_user_out(user), token=token)


@router.get("/session", response_model=SessionUserOut)
async def current_session(ctx: RequestContext = Depends(get_request_context)) -> SessionUserOut:
    return _user_out(ctx.require_user())


@router.post("/logout", response_model=MessageResponse)
async def log_out(
    response: Response,
    sessions: SessionStore = Depends(get_sessions),
    settings: Settings = Depends(get_app_settings),
    ctx: RequestContext = Depends(get_request_context),
) -> MessageResponse:
    await user_service.log_out(sessions, ctx)
    response.delete_cookie(settings.session_cookie_name)
    return MessageResponse(message="User successfully logged out")
