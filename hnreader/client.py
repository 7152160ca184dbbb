from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Union

import httpx

from hnreader.constants import (
    EXTERNAL_REQUEST_SEMAPHORE,
    HN_BASE_URL,
    HN_USER_AGENT,
    REQUEST_CONNECT_TIMEOUT,
    REQUEST_TIMEOUT,
    STORIES_PER_PAGE,
)
from hnreader.errors import FetchError
from hnreader.logging_config import get_logger
from hnreader.models import Section

logger = get_logger(__name__)


@dataclass(frozen=True)
class ListingTarget:
    """One page of a section listing."""

    section: Section
    page: int = 1
    # (next, n) taken from the previous page's "More" link; only used by `new`
    cursor: Optional[tuple[str, str]] = None

    @property
    def path(self) -> str:
        base = f"/{self.section.path}"
        if self.page <= 1:
            return base
        if self.section is Section.NEW:
            if self.cursor:
                next_id, n = self.cursor
                return f"{base}?next={next_id}&n={n}"
            return f"{base}?n={1 + (self.page - 1) * STORIES_PER_PAGE}"
        return f"{base}?p={self.page}"


@dataclass(frozen=True)
class ItemTarget:
    """One page of a story's comment thread."""

    story_id: int
    page: int = 1
    latest: bool = False  # newest-first ordering via /latest

    @property
    def path(self) -> str:
        base = "latest" if self.latest else "item"
        path = f"/{base}?id={self.story_id}"
        if self.page > 1:
            path += f"&p={self.page}"
        return path


FetchTarget = Union[ListingTarget, ItemTarget]


class HNClient:
    BASE_URL: str = HN_BASE_URL

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        user_agent: str = HN_USER_AGENT,
        max_concurrency: int = EXTERNAL_REQUEST_SEMAPHORE,
    ) -> None:
        self.client: httpx.AsyncClient = httpx.AsyncClient(
            base_url=self.BASE_URL,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            timeout=httpx.Timeout(timeout, connect=min(timeout, REQUEST_CONNECT_TIMEOUT)),
        )
        self._sem: asyncio.Semaphore = asyncio.Semaphore(max_concurrency)

    async def fetch(self, target: FetchTarget) -> str:
        """
        Fetch the raw HTML for a listing or item page.

        Raises FetchError on DNS/connect failures, timeouts and non-2xx
        responses. Nothing is retried here.
        """
        url = f"{self.BASE_URL}{target.path}"
        async with self._sem:
            logger.debug("fetch_start", url=url)
            try:
                resp: httpx.Response = await self.client.get(target.path)
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                logger.warning("fetch_failed", url=url, status=status)
                raise FetchError(url, f"HTTP {status}") from e
            except httpx.TimeoutException as e:
                logger.warning("fetch_failed", url=url, error="timeout")
                raise FetchError(url, f"timeout ({type(e).__name__})") from e
            except httpx.HTTPError as e:
                logger.warning("fetch_failed", url=url, error=str(e))
                raise FetchError(url, str(e) or type(e).__name__) from e
        return resp.text

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> HNClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
