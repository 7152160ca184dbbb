"""
Section listing parser.

A listing page is a table of row-groups: a `tr.athing` row carrying the rank
and title anchor, followed by a sibling row whose `td.subtext` holds score,
author, age and comment count. All knowledge of that shape lives here.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from hnreader.errors import ParseError
from hnreader.logging_config import get_logger
from hnreader.models import StorySummary
from hnreader.url_utils import domain_of, resolve_story_url

logger = get_logger(__name__)

_SCORE_RE = re.compile(r"(\d+)\s+points?")
_COMMENTS_RE = re.compile(r"(\d+)\s+comments?")


def _text(tag: Optional[Tag]) -> str:
    if not isinstance(tag, Tag):
        return ""
    return tag.get_text().replace("\xa0", " ").strip()


def _parse_id(row: Tag) -> Optional[int]:
    sid = row.get("id")
    if isinstance(sid, list):
        sid = sid[0] if sid else None
    if not isinstance(sid, str) or not (sid.isascii() and sid.isdigit()):
        return None
    value = int(sid)
    return value if value > 0 else None


def _metadata_row(row: Tag) -> Optional[Tag]:
    sibling = row.find_next_sibling("tr")
    if not isinstance(sibling, Tag):
        return None
    # The next athing means this row-group has no metadata row at all
    if "athing" in (sibling.get("class") or []):
        return None
    subtext = sibling.find("td", class_="subtext")
    return subtext if isinstance(subtext, Tag) else None


def _parse_score(subtext: Tag) -> int:
    match = _SCORE_RE.search(_text(subtext.find(class_="score")))
    return int(match.group(1)) if match else 0


def _parse_age(subtext: Tag) -> str:
    age = subtext.find(class_="age")
    if not isinstance(age, Tag):
        return ""
    link = age.find("a")
    return _text(link) if isinstance(link, Tag) else _text(age)


def _parse_comment_count(subtext: Tag) -> int:
    for link in subtext.find_all("a"):
        label = _text(link)
        if "discuss" in label:
            return 0
        if "comment" in label:
            match = _COMMENTS_RE.search(label)
            return int(match.group(1)) if match else 0
    return 0


def _parse_row_group(row: Tag, rank: int) -> Optional[StorySummary]:
    sid = _parse_id(row)
    if sid is None:
        return None

    title_span = row.find("span", class_="titleline")
    anchor = title_span.find("a") if isinstance(title_span, Tag) else None
    if not isinstance(anchor, Tag):
        return None

    href = anchor.get("href")
    url = resolve_story_url(href if isinstance(href, str) else "")

    author = ""
    score = 0
    age = ""
    comment_count = 0
    subtext = _metadata_row(row)
    if subtext is not None:
        author = _text(subtext.find(class_="hnuser"))
        score = _parse_score(subtext)
        age = _parse_age(subtext)
        comment_count = _parse_comment_count(subtext)

    return StorySummary(
        id=sid,
        title=_text(anchor),
        url=url,
        domain=domain_of(url),
        author=author,
        score=score,
        age=age,
        comment_count=comment_count,
        rank=rank,
    )


def parse_listing(markup: str, context: Optional[str] = None) -> list[StorySummary]:
    """
    Parse a section listing page into stories in document order.

    Row-groups missing an id or title anchor are skipped. Raises ParseError
    when the page is non-blank but no row-group could be recovered.
    """
    if not markup or not markup.strip():
        return []

    soup = BeautifulSoup(markup, "html.parser")
    stories: list[StorySummary] = []
    skipped = 0
    for row in soup.find_all("tr", class_="athing"):
        if "comtr" in (row.get("class") or []):
            continue
        story = _parse_row_group(row, rank=len(stories) + 1)
        if story is None:
            skipped += 1
            logger.debug("row_group_skipped", row_id=row.get("id"), context=context)
            continue
        stories.append(story)

    if not stories:
        raise ParseError(
            f"zero row-groups recovered ({skipped} skipped)", context=context
        )
    return stories


def parse_more_link(markup: str) -> Optional[str]:
    """Return the href of the page's "More" link, if any."""
    soup = BeautifulSoup(markup, "html.parser")
    more = soup.find("a", class_="morelink")
    if not isinstance(more, Tag):
        return None
    href = more.get("href")
    return href if isinstance(href, str) else None


def parse_newest_cursor(href: Optional[str]) -> Optional[tuple[str, str]]:
    """Extract the (next, n) pair from a `newest?next=...&n=...` link."""
    if not href:
        return None
    query = parse_qs(urlsplit(href).query)
    next_id = query.get("next", [""])[0]
    n = query.get("n", [""])[0]
    if (next_id + n).isascii() and next_id.isdigit() and n.isdigit():
        return next_id, n
    return None
