from __future__ import annotations

from typing import Optional
from urllib.parse import urljoin, urlsplit

from url_normalize import url_normalize

from hnreader.constants import HN_BASE_URL


def resolve_story_url(href: str) -> Optional[str]:
    """Return the external URL of a story link, or None for text posts."""
    if not href or href.startswith("item?id="):
        return None
    if href.startswith(("http://", "https://")):
        return href
    return urljoin(f"{HN_BASE_URL}/", href)


def domain_of(url: Optional[str]) -> str:
    if not url:
        return ""
    try:
        normalized = url_normalize(url)
    except Exception:
        normalized = url

    host = urlsplit(normalized).hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host
