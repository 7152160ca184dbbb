"""Typed data models for HN listings and comment threads."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional, TypedDict

from hnreader.constants import HN_BASE_URL


class Section(str, Enum):
    """A named HN listing category."""

    TOP = "top"
    NEW = "new"
    BEST = "best"
    ASK = "ask"
    SHOW = "show"
    JOBS = "jobs"

    @property
    def path(self) -> str:
        return _SECTION_PATHS[self]


_SECTION_PATHS: dict[Section, str] = {
    Section.TOP: "news",
    Section.NEW: "newest",
    Section.BEST: "best",
    Section.ASK: "ask",
    Section.SHOW: "show",
    Section.JOBS: "jobs",
}


class RefreshPolicy(Enum):
    USE_CACHE = "use_cache"
    FORCE_BYPASS = "force_bypass"


class StorySummaryDict(TypedDict):
    """Serialized StorySummary payload for cache snapshots."""

    id: int
    title: str
    url: Optional[str]
    domain: str
    author: str
    score: int
    age: str
    comment_count: int
    rank: int


class CommentDict(TypedDict):
    """Serialized Comment payload for cache snapshots."""

    id: int
    author: Optional[str]
    age: str
    body: Optional[str]
    depth: int
    children: list["CommentDict"]


@dataclass(frozen=True)
class StorySummary:
    """One story row from a section listing page."""

    id: int
    title: str = ""
    url: Optional[str] = None
    domain: str = ""
    author: str = ""
    score: int = 0
    age: str = ""
    comment_count: int = 0
    rank: int = 0  # 1-based position within its section+page

    @property
    def hn_url(self) -> str:
        return f"{HN_BASE_URL}/item?id={self.id}"

    @property
    def is_text_post(self) -> bool:
        return self.url is None

    @classmethod
    def from_dict(cls, d: StorySummaryDict) -> StorySummary:
        return cls(
            id=int(d["id"]),
            title=str(d.get("title", "")),
            url=d.get("url"),
            domain=str(d.get("domain", "")),
            author=str(d.get("author", "")),
            score=int(d.get("score", 0)),
            age=str(d.get("age", "")),
            comment_count=int(d.get("comment_count", 0)),
            rank=int(d.get("rank", 0)),
        )

    def to_dict(self) -> StorySummaryDict:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "domain": self.domain,
            "author": self.author,
            "score": self.score,
            "age": self.age,
            "comment_count": self.comment_count,
            "rank": self.rank,
        }


@dataclass(frozen=True)
class Comment:
    """
    A comment and the replies it owns.

    `body` is the comment's inner HTML as served by the site. Deleted, dead or
    flagged comments keep their place in the tree with `body=None`.
    """

    id: int
    author: Optional[str]
    age: str
    body: Optional[str]
    depth: int
    children: tuple[Comment, ...] = field(default_factory=tuple)

    @property
    def is_placeholder(self) -> bool:
        return self.body is None

    def walk(self) -> Iterator[Comment]:
        """Yield this comment and all descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    @classmethod
    def from_dict(cls, d: CommentDict) -> Comment:
        return cls(
            id=int(d["id"]),
            author=d.get("author"),
            age=str(d.get("age", "")),
            body=d.get("body"),
            depth=int(d.get("depth", 0)),
            children=tuple(cls.from_dict(c) for c in d.get("children", [])),
        )

    def to_dict(self) -> CommentDict:
        return {
            "id": self.id,
            "author": self.author,
            "age": self.age,
            "body": self.body,
            "depth": self.depth,
            "children": [c.to_dict() for c in self.children],
        }


def iter_forest(forest: Iterable[Comment]) -> Iterator[Comment]:
    """Pre-order traversal over every comment in a forest."""
    for root in forest:
        yield from root.walk()


def count_comments(forest: Iterable[Comment]) -> int:
    return sum(1 for _ in iter_forest(forest))
