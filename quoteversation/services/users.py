from __future__ import annotations

import asyncio
import logging

import bcrypt

from quoteversation.core.config import Settings
from quoteversation.core.errors import AuthenticationRequired, Conflict, ValidationFailed
from quoteversation.db.sessions import SessionStore, SessionUser
from quoteversation.db.store import DocumentStore, DuplicateUserError
from quoteversation.schemas.auth import PASSWORD_MAX_BYTES
from quoteversation.services.auth import RequestContext, encode_session_token

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10

_DUPLICATE_MESSAGES = {
    "email": "Email already exists",
    "username": "Username already exists",
}


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


async def _start_session(settings: Settings, sessions: SessionStore, user: SessionUser) -> tuple[SessionUser, str]:
    session_id = await sessions.create(user, settings.session_ttl_seconds)
    return user, encode_session_token(settings, session_id, user)


async def register(
    store: DocumentStore,
    sessions: SessionStore,
    settings: Settings,
    *,
    username: str,
    email: str,
    password: str,
) -> tuple[SessionUser, str]:
    clean_username = username.strip()
    clean_email = email.strip().lower()
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValidationFailed(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")

    if await store.find_user_by_field("email", clean_email) is not None:
        raise Conflict(_DUPLICATE_MESSAGES["email"])
    if await store.find_user_by_field("username", clean_username) is not None:
        raise Conflict(_DUPLICATE_MESSAGES["username"])

    hashed = await asyncio.to_thread(hash_password, password)
    try:
        user_id = await store.insert_user({"username": clean_username, "email": clean_email, "password": hashed})
    except DuplicateUserError as exc:
        raise Conflict(_DUPLICATE_MESSAGES.get(exc.field, "User already exists")) from exc

    logger.info("Registered user %s", user_id)
    return await _start_session(
        settings, sessions, SessionUser(uid=str(user_id), username=clean_username, email=clean_email)
    )


async def log_in(
    store: DocumentStore,
    sessions: SessionStore,
    settings: Settings,
    *,
    username_or_email: str,
    password: str,
) -> tuple[SessionUser, str]:
    login = username_or_email.strip()
    user = await store.find_user_by_login(login)
    if user is None and "@" in login:
        user = await store.find_user_by_login(login.lower())
    if user is None:
        raise AuthenticationRequired("Invalid login")
    if not await asyncio.to_thread(verify_password, password, str(user.get("password") or "")):
        raise AuthenticationRequired("Invalid login")

    logger.info("User %s logged in", user["_id"])
    return await _start_session(
        settings,
        sessions,
        SessionUser(uid=str(user["_id"]), username=str(user["username"]), email=str(user["email"])),
    )


async def log_out(sessions: SessionStore, ctx: RequestContext) -> None:
    user = ctx.require_user()
    if ctx.session_id:
        await sessions.destroy(ctx.session_id)
    logger.info("User %s logged out", user.uid)
