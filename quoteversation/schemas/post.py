from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class SearchRequest(BaseModel):
    term: str | None = None
    date_lower: datetime | None = None
    date_upper: datetime | None = None
    source: str | None = None
    sort: dict[str, Literal[1, -1]] | None = None
    skip: int = 0


class SourceIn(BaseModel):
    text: str = ""
    link: str = ""


class PostCreate(BaseModel):
    quote: str
    source: SourceIn = Field(default_factory=SourceIn)
    author_id: str | None = None


class PostUpdate(BaseModel):
    quote: str | None = None
    source_text: str | None = None
    source_link: str | None = None


class LikeIn(BaseModel):
    user_id: str | None = None


class AuthorOut(BaseModel):
    id: str
    display_name: str


class SourceOut(BaseModel):
    text: str = ""
    link: str = ""


class CommentOut(BaseModel):
    text: str
    likes: int = 0
    author: str


class PostOut(BaseModel):
    id: str
    quote: str
    author: AuthorOut
    date_posted: str
    source: SourceOut = Field(default_factory=SourceOut)
    likes: list[str] = Field(default_factory=list)
    bookmarks: list[str] = Field(default_factory=list)
    comments: list[CommentOut] = Field(default_factory=list)


class LikesOut(BaseModel):
    post_id: str
    likes: list[str] = Field(default_factory=list)
