from __future__ import annotations

from datetime import datetime
from typing import Any

import httpx

from quoteversation.schemas.auth import AuthOut, SessionUserOut
from quoteversation.schemas.post import LikesOut, PostOut


class ApiError(RuntimeError):
    def __init__(self, status_code: int, detail: str):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


def _headers() -> dict[str, str]:
    return {
        "Accept": "application/json",
        "User-Agent": "Quoteversation-Client/1.0",
    }


class QuoteversationClient:
    """Thin async client for the Quoteversation REST API."""

    def __init__(
        self,
        base_url: str,
        *,
        api_prefix: str = "/api/v1",
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 20,
    ):
        self.http = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + api_prefix,
            headers=_headers(),
            transport=transport,
            timeout=timeout,
        )
        self.token: str | None = None
        self.user: SessionUserOut | None = None

    async def __aenter__(self) -> "QuoteversationClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        res = await self.http.request(method, path, headers=headers, **kwargs)
        if res.is_error:
            try:
                detail = res.json().get("detail")
            except ValueError:
                detail = None
            raise ApiError(res.status_code, str(detail or res.reason_phrase))
        return res

    def _remember(self, payload: dict[str, Any]) -> SessionUserOut:
        auth = AuthOut.model_validate(payload)
        self.token = auth.token
        self.user = auth.user
        return auth.user

    async def register(self, username: str, email: str, password: str) -> SessionUserOut:
        res = await self._request(
            "POST", "/auth/register", json={"username": username, "email": email, "password": password}
        )
        return self._remember(res.json())

    async def log_in(self, username_or_email: str, password: str) -> SessionUserOut:
        res = await self._request(
            "POST", "/auth/login", json={"username_or_email": username_or_email, "password": password}
        )
        return self._remember(res.json())

    async def session(self) -> SessionUserOut:
        res = await self._request("GET", "/auth/session")
        return SessionUserOut.model_validate(res.json())

    async def log_out(self) -> None:
        await self._request("POST", "/auth/logout")
        self.token = None
        self.user = None

    async def fetch_posts(
        self,
        *,
        term: str | None = None,
        date_lower: datetime | None = None,
        date_upper: datetime | None = None,
        source: str | None = None,
        sort: dict[str, int] | None = None,
        skip: int = 0,
    ) -> list[PostOut]:
        params: list[tuple[str, str]] = []
        if term:
            params.append(("term", term))
        if date_lower is not None:
            params.append(("date_lower", date_lower.isoformat()))
        if date_upper is not None:
            params.append(("date_upper", date_upper.isoformat()))
        if source:
            params.append(("source", source))
        for field, direction in (sort or {}).items():
            params.append(("sort", f"{field}:{direction}"))
        if skip:
            params.append(("skip", str(skip)))
        res = await self._request("GET", "/posts", params=params)
        return [PostOut.model_validate(x) for x in res.json()]

    async def create_post(self, quote: str, source_text: str = "", source_link: str = "") -> PostOut:
        body: dict[str, Any] = {"quote": quote, "source": {"text": source_text, "link": source_link}}
        if self.user is not None:
            body["author_id"] = self.user.uid
        res = await self._request("POST", "/posts", json=body)
        return PostOut.model_validate(res.json())

    async def update_post(
        self,
        post_id: str,
        *,
        quote: str | None = None,
        source_text: str | None = None,
        source_link: str | None = None,
    ) -> PostOut:
        body = {
            k: v
            for k, v in {"quote": quote, "source_text": source_text, "source_link": source_link}.items()
            if v is not None
        }
        res = await self._request("PATCH", f"/posts/{post_id}", json=body)
        return PostOut.model_validate(res.json())

    async def delete_post(self, post_id: str) -> None:
        await self._request("DELETE", f"/posts/{post_id}")

    async def like(self, post_id: str) -> LikesOut:
        res = await self._request("POST", f"/posts/{post_id}/like")
        return LikesOut.model_validate(res.json())

    async def unlike(self, post_id: str) -> LikesOut:
        res = await self._request("DELETE", f"/posts/{post_id}/like")
        return LikesOut.model_validate(res.json())
