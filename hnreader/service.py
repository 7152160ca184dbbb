"""
ContentService: the single entry point the UI calls.

Combines the fetcher, the parsers and a shared TTLCache. Every request is
keyed; a key with a fetch already in flight is never fetched twice.
"""

from __future__ import annotations

import asyncio
import functools
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar, Union

from hnreader.cache import MISS, TTLCache
from hnreader.client import FetchTarget, HNClient, ItemTarget, ListingTarget
from hnreader.comments import build_forest
from hnreader.config import Settings
from hnreader.constants import (
    COMMENTS_CACHE_TTL,
    INDENT_UNIT,
    LISTING_CACHE_TTL,
    MAX_LISTING_PAGES,
)
from hnreader.errors import FetchError, ParseError, ServiceError
from hnreader.listing import parse_listing, parse_more_link, parse_newest_cursor
from hnreader.logging_config import get_logger
from hnreader.models import Comment, RefreshPolicy, Section, StorySummary

logger = get_logger(__name__)

T = TypeVar("T")

Listing = tuple[StorySummary, ...]
Forest = tuple[Comment, ...]


class Fetcher(Protocol):
    async def fetch(self, target: FetchTarget) -> str: ...

    async def close(self) -> None: ...


def listing_key(section: Section, page: int) -> str:
    return f"listing:{section.value}:{page}"


def comments_key(story_id: int, page: int) -> str:
    return f"comments:{story_id}:{page}"


def latest_key(story_id: int) -> str:
    return f"latest:{story_id}"


def _check_page(page: int) -> None:
    if not isinstance(page, int) or page < 1:
        raise ValueError(f"page must be a positive integer, got {page!r}")


def _check_story_id(story_id: int) -> None:
    if not isinstance(story_id, int) or story_id < 1:
        raise ValueError(f"story_id must be a positive integer, got {story_id!r}")


class ContentService:
    def __init__(
        self,
        fetcher: Optional[Fetcher] = None,
        cache: Optional[TTLCache[Any]] = None,
        listing_ttl: float = LISTING_CACHE_TTL,
        comments_ttl: float = COMMENTS_CACHE_TTL,
        indent_unit: float = INDENT_UNIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.fetcher: Fetcher = fetcher if fetcher is not None else HNClient()
        self.cache: TTLCache[Any] = (
            cache if cache is not None else TTLCache(default_ttl=listing_ttl, clock=clock)
        )
        self.listing_ttl = listing_ttl
        self.comments_ttl = comments_ttl
        self.indent_unit = indent_unit
        self._inflight: dict[str, asyncio.Task[Any]] = {}
        # Cursor for (section, page) learned from the previous page's "More" link
        self._cursors: dict[tuple[Section, int], tuple[str, str]] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> ContentService:
        client = HNClient(
            timeout=settings.request_timeout,
            user_agent=settings.user_agent,
            max_concurrency=settings.max_concurrency,
        )
        return cls(
            fetcher=client,
            listing_ttl=settings.listing_ttl,
            comments_ttl=settings.comments_ttl,
        )

    # -- public API -------------------------------------------------------

    async def get_listing(
        self,
        section: Union[Section, str],
        page: int = 1,
        refresh_policy: RefreshPolicy = RefreshPolicy.USE_CACHE,
    ) -> list[StorySummary]:
        section = Section(section)
        _check_page(page)
        key = listing_key(section, page)
        target = ListingTarget(section, page, cursor=self._cursors.get((section, page)))
        stories: Listing = await self._get(
            key, refresh_policy, lambda: self._load_listing(key, target)
        )
        return list(stories)

    async def get_listing_pages(
        self,
        section: Union[Section, str],
        pages: int,
        refresh_policy: RefreshPolicy = RefreshPolicy.USE_CACHE,
    ) -> list[StorySummary]:
        """
        Collect pages 1..pages of a section, concatenated in page order.

        Each page goes through get_listing and is cached under its own key.
        A page past the end of the listing stops collection; fetch failures
        propagate.
        """
        section = Section(section)
        if not 1 <= pages <= MAX_LISTING_PAGES:
            raise ValueError(f"pages must be in 1..{MAX_LISTING_PAGES}, got {pages}")

        stories: list[StorySummary] = []
        for page in range(1, pages + 1):
            try:
                stories.extend(await self.get_listing(section, page, refresh_policy))
            except ServiceError as e:
                if page == 1 or not e.is_parse_error:
                    raise
                logger.info("listing_end_reached", section=section.value, page=page)
                break
        return stories

    async def get_comments(
        self,
        story_id: int,
        page: int = 1,
        refresh_policy: RefreshPolicy = RefreshPolicy.USE_CACHE,
    ) -> list[Comment]:
        _check_story_id(story_id)
        _check_page(page)
        key = comments_key(story_id, page)
        target = ItemTarget(story_id, page)
        forest: Forest = await self._get(
            key, refresh_policy, lambda: self._load_forest(key, target)
        )
        return list(forest)

    async def get_latest_comments(
        self,
        story_id: int,
        refresh_policy: RefreshPolicy = RefreshPolicy.USE_CACHE,
    ) -> list[Comment]:
        """Newest-first comments, falling back to the regular thread page."""
        _check_story_id(story_id)
        key = latest_key(story_id)
        forest: Forest = await self._get(
            key, refresh_policy, lambda: self._load_latest(key, story_id)
        )
        return list(forest)

    def invalidate_section(self, section: Union[Section, str]) -> None:
        section = Section(section)
        self.cache.invalidate_prefix(f"listing:{section.value}:")
        for cursor_key in [k for k in self._cursors if k[0] is section]:
            del self._cursors[cursor_key]

    def invalidate_story(self, story_id: int) -> None:
        self.cache.invalidate_prefix(f"comments:{story_id}:")
        self.cache.invalidate(latest_key(story_id))

    def is_in_flight(self, key: str) -> bool:
        return key in self._inflight

    # -- cache snapshots --------------------------------------------------

    def save_cache(self, path: Path) -> int:
        count = self.cache.dump(path, _encode_payload)
        logger.debug("cache_saved", path=str(path), entries=count)
        return count

    def load_cache(self, path: Path) -> int:
        count = self.cache.load(path, _decode_payload)
        logger.debug("cache_loaded", path=str(path), entries=count)
        return count

    # -- internals --------------------------------------------------------

    async def _get(
        self,
        key: str,
        policy: RefreshPolicy,
        loader: Callable[[], Awaitable[T]],
    ) -> T:
        if policy is RefreshPolicy.USE_CACHE:
            cached = self.cache.get(key)
            if cached is not MISS:
                logger.debug("cache_hit", key=key)
                return cached

        task = self._inflight.get(key)
        if task is None:
            logger.debug("cache_miss", key=key, policy=policy.value)
            task = asyncio.create_task(loader(), name=f"hnreader:{key}")
            self._inflight[key] = task
            task.add_done_callback(functools.partial(self._on_done, key))
        else:
            logger.debug("joined_in_flight", key=key)
        # Shielded so an abandoned view does not cancel the shared fetch
        return await asyncio.shield(task)

    def _on_done(self, key: str, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Awaiters receive the error; this marks it retrieved when none remain
        if not task.cancelled():
            task.exception()

    async def _fetch(self, key: str, target: FetchTarget) -> str:
        try:
            return await self.fetcher.fetch(target)
        except FetchError as e:
            raise ServiceError(key, e) from e

    async def _load_listing(self, key: str, target: ListingTarget) -> Listing:
        markup = await self._fetch(key, target)
        try:
            stories = tuple(parse_listing(markup, context=key))
        except ParseError as e:
            logger.warning("listing_parse_failed", key=key, error=str(e))
            raise ServiceError(key, e) from e

        if target.section is Section.NEW:
            cursor = parse_newest_cursor(parse_more_link(markup))
            if cursor:
                self._cursors[(target.section, target.page + 1)] = cursor

        self.cache.put(key, stories, ttl=self.listing_ttl)
        logger.info("listing_loaded", key=key, stories=len(stories))
        return stories

    def _parse_forest(self, key: str, markup: str) -> Forest:
        try:
            return tuple(build_forest(markup, unit=self.indent_unit, context=key))
        except ParseError as e:
            logger.warning("comments_parse_failed", key=key, error=str(e))
            raise ServiceError(key, e) from e

    async def _load_forest(self, key: str, target: ItemTarget) -> Forest:
        forest = self._parse_forest(key, await self._fetch(key, target))
        self.cache.put(key, forest, ttl=self.comments_ttl)
        logger.info("comments_loaded", key=key, roots=len(forest))
        return forest

    async def _load_latest(self, key: str, story_id: int) -> Forest:
        latest = ItemTarget(story_id, latest=True)
        forest = self._parse_forest(key, await self._fetch(key, latest))
        if not forest:
            logger.info("latest_comments_empty", key=key)
            fallback = ItemTarget(story_id)
            forest = self._parse_forest(key, await self._fetch(key, fallback))
        self.cache.put(key, forest, ttl=self.comments_ttl)
        return forest

    async def close(self) -> None:
        await self.fetcher.close()

    async def __aenter__(self) -> ContentService:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


def _encode_payload(key: str, payload: Any) -> list[dict]:
    return [item.to_dict() for item in payload]


def _decode_payload(key: str, raw: Any) -> Union[Listing, Forest]:
    if key.startswith("listing:"):
        return tuple(StorySummary.from_dict(d) for d in raw)
    return tuple(Comment.from_dict(d) for d in raw)
