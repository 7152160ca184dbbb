"""Typed errors raised by the ingestion pipeline."""

from __future__ import annotations

from typing import Optional


class HNReaderError(Exception):
    """Base class for every error the pipeline raises."""


class FetchError(HNReaderError):
    """Network, timeout or HTTP status failure for a single request."""

    def __init__(self, url: str, cause: str) -> None:
        super().__init__(f"Failed to fetch {url}: {cause}")
        self.url = url
        self.cause = cause


class ParseError(HNReaderError):
    """Markup did not have the expected shape."""

    def __init__(self, message: str, context: Optional[str] = None) -> None:
        full = f"{message} ({context})" if context else message
        super().__init__(full)
        self.message = message
        self.context = context


class ServiceError(HNReaderError):
    """A FetchError or ParseError attributed to one request key."""

    def __init__(self, key: str, cause: FetchError | ParseError) -> None:
        super().__init__(f"{key}: {cause}")
        self.key = key
        self.cause = cause

    @property
    def is_fetch_error(self) -> bool:
        return isinstance(self.cause, FetchError)

    @property
    def is_parse_error(self) -> bool:
        return isinstance(self.cause, ParseError)
