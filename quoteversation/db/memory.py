"""
In-memory document store for development and tests.

Understands the subset of aggregation stages the post search emits:
``$search`` (compound must/should of text and range operators), ``$sort``,
``$limit`` and ``$skip``.
"""

from __future__ import annotations

import copy
import re
from datetime import datetime, timezone
from typing import Any, Iterable

from bson import ObjectId

from quoteversation.db.store import DuplicateUserError

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def _get_path(doc: dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _tokens(value: Any) -> set[str]:
    if not isinstance(value, str):
        return set()
    return {m.group(0).lower() for m in _TOKEN_RE.finditer(value)}


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _text_matches(doc: dict[str, Any], spec: dict[str, Any]) -> bool:
    wanted = _tokens(spec.get("query"))
    paths = spec.get("path")
    if isinstance(paths, str):
        paths = [paths]
    for path in paths or []:
        if wanted & _tokens(_get_path(doc, path)):
            return True
    return False


def _range_matches(doc: dict[str, Any], spec: dict[str, Any]) -> bool:
    value = _get_path(doc, spec["path"])
    if not isinstance(value, datetime):
        return False
    value = _as_aware(value)
    if "gte" in spec and value < _as_aware(spec["gte"]):
        return False
    if "lte" in spec and value > _as_aware(spec["lte"]):
        return False
    return True


def _clause_matches(doc: dict[str, Any], clause: dict[str, Any]) -> bool:
    if "text" in clause:
        return _text_matches(doc, clause["text"])
    if "range" in clause:
        return _range_matches(doc, clause["range"])
    raise ValueError(f"Unsupported search operator: {sorted(clause)}")


def _apply_search(docs: list[dict[str, Any]], search: dict[str, Any]) -> list[dict[str, Any]]:
    compound = search.get("compound") or {}
    must = compound.get("must") or []
    should = compound.get("should") or []

    scored: list[tuple[int, int, dict[str, Any]]] = []
    for position, doc in enumerate(docs):
        if not all(_clause_matches(doc, c) for c in must):
            continue
        boost = sum(1 for c in should if _clause_matches(doc, c))
        if not must and should and boost == 0:
            continue
        scored.append((-boost, position, doc))
    scored.sort(key=lambda item: (item[0], item[1]))
    return [doc for _, _, doc in scored]


def _sort_key(value: Any) -> tuple[int, Any]:
    if value is None:
        return (0, 0)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, (list, dict)):
        return (3, len(value))
    if isinstance(value, ObjectId):
        return (4, str(value))
    if isinstance(value, datetime):
        return (5, _as_aware(value))
    return (6, str(value))


def _apply_sort(docs: list[dict[str, Any]], spec: dict[str, int]) -> list[dict[str, Any]]:
    out = list(docs)
    for field, direction in reversed(list(spec.items())):
        out.sort(key=lambda d: _sort_key(_get_path(d, field)), reverse=int(direction) < 0)
    return out


def run_stages(docs: Iterable[dict[str, Any]], stages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    out = list(docs)
    for stage in stages:
        if "$search" in stage:
            out = _apply_search(out, stage["$search"])
        elif "$sort" in stage:
            out = _apply_sort(out, stage["$sort"])
        elif "$limit" in stage:
            out = out[: int(stage["$limit"])]
        elif "$skip" in stage:
            out = out[int(stage["$skip"]) :]
        else:
            raise ValueError(f"Unsupported stage: {sorted(stage)}")
    return out


class InMemoryDocumentStore:
    def __init__(self):
        self.posts: dict[ObjectId, dict[str, Any]] = {}
        self.users: dict[ObjectId, dict[str, Any]] = {}
        self.executed_stages: list[list[dict[str, Any]]] = []

    def reset(self) -> None:
        self.posts.clear()
        self.users.clear()
        self.executed_stages.clear()

    async def aggregate_posts(self, stages: list[dict[str, Any]]) -> list[dict[str, Any]]:
        self.executed_stages.append(copy.deepcopy(stages))
        return copy.deepcopy(run_stages(self.posts.values(), stages))

    async def find_post(self, post_id: ObjectId) -> dict[str, Any] | None:
        doc = self.posts.get(post_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def insert_post(self, doc: dict[str, Any]) -> ObjectId:
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self.posts[stored["_id"]] = stored
        return stored["_id"]

    async def update_post(self, post_id: ObjectId, fields: dict[str, Any]) -> dict[str, Any] | None:
        doc = self.posts.get(post_id)
        if doc is None:
            return None
        for path, value in fields.items():
            target = doc
            *parents, leaf = path.split(".")
            for part in parents:
                target = target.setdefault(part, {})
            target[leaf] = value
        return copy.deepcopy(doc)

    async def delete_post(self, post_id: ObjectId) -> bool:
        return self.posts.pop(post_id, None) is not None

    async def add_like(self, post_id: ObjectId, user_id: ObjectId) -> list[ObjectId] | None:
        doc = self.posts.get(post_id)
        if doc is None or user_id in doc["likes"]:
            return None
        doc["likes"].append(user_id)
        return list(doc["likes"])

    async def remove_like(self, post_id: ObjectId, user_id: ObjectId) -> list[ObjectId] | None:
        doc = self.posts.get(post_id)
        if doc is None or user_id not in doc["likes"]:
            return None
        doc["likes"] = [x for x in doc["likes"] if x != user_id]
        return list(doc["likes"])

    async def find_user(self, user_id: ObjectId) -> dict[str, Any] | None:
        doc = self.users.get(user_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find_user_by_login(self, username_or_email: str) -> dict[str, Any] | None:
        for doc in self.users.values():
            if username_or_email in (doc.get("username"), doc.get("email")):
                return copy.deepcopy(doc)
        return None

    async def find_user_by_field(self, field: str, value: str) -> dict[str, Any] | None:
        for doc in self.users.values():
            if doc.get(field) == value:
                return copy.deepcopy(doc)
        return None

    async def insert_user(self, doc: dict[str, Any]) -> ObjectId:
        for field in ("email", "username"):
            if any(u.get(field) == doc.get(field) for u in self.users.values()):
                raise DuplicateUserError(field)
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self.users[stored["_id"]] = stored
        return stored["_id"]

    async def close(self) -> None:
        return None
