"""
Comment tree reconstruction.

An item page lists comments as flat `tr.comtr` rows in depth-first order.
Nesting is only visible through the width of a spacer image in `td.ind`, so
the tree is rebuilt from (depth, document order) with a stack holding the
current right-hand path of the tree.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from hnreader.constants import INDENT_UNIT
from hnreader.errors import ParseError
from hnreader.logging_config import get_logger
from hnreader.models import Comment

logger = get_logger(__name__)


@dataclass
class CommentRecord:
    """One comment block as read from the page, before tree building."""

    id: int
    depth: int
    author: Optional[str]
    age: str
    body: Optional[str]


@dataclass
class _Node:
    record: CommentRecord
    children: list[_Node] = field(default_factory=list)

    def freeze(self) -> Comment:
        r = self.record
        return Comment(
            id=r.id,
            author=r.author,
            age=r.age,
            body=r.body,
            depth=r.depth,
            children=tuple(child.freeze() for child in self.children),
        )


def width_to_depth(width: object, unit: float) -> int:
    """Convert an indicator width to a nesting depth; bad widths mean 0."""
    try:
        value = float(width)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return int(value // unit)


def _block_depth(block: Tag, unit: float) -> int:
    ind = block.find("td", class_="ind")
    if not isinstance(ind, Tag):
        return 0
    spacer = ind.find("img")
    if isinstance(spacer, Tag) and spacer.get("width") is not None:
        return width_to_depth(spacer.get("width"), unit)
    # No spacer image: the indent attribute already counts levels
    return width_to_depth(ind.get("indent"), 1)


def _block_id(block: Tag) -> Optional[int]:
    cid = block.get("id")
    if isinstance(cid, str) and cid.isascii() and cid.isdigit() and int(cid) > 0:
        return int(cid)
    return None


def _block_body(block: Tag) -> Optional[str]:
    commtext = block.find(class_="commtext")
    if not isinstance(commtext, Tag):
        return None
    for reply in commtext.find_all(class_="reply"):
        reply.decompose()
    return commtext.decode_contents().strip()


def _block_age(block: Tag) -> str:
    age = block.find(class_="age")
    if not isinstance(age, Tag):
        return ""
    link = age.find("a")
    return (link if isinstance(link, Tag) else age).get_text().replace("\xa0", " ").strip()


def parse_record(block: Tag, unit: float = INDENT_UNIT) -> CommentRecord:
    """Read one `tr.comtr` block. Never fails; missing parts stay absent."""
    author_tag = block.find(class_="hnuser")
    author = author_tag.get_text().strip() if isinstance(author_tag, Tag) else None
    return CommentRecord(
        id=_block_id(block) or 0,
        depth=_block_depth(block, unit),
        author=author or None,
        age=_block_age(block),
        body=_block_body(block),
    )


def _is_empty_thread(soup: BeautifulSoup) -> bool:
    """True for item pages that legitimately carry no comments."""
    tree = soup.find("table", class_="comment-tree")
    if isinstance(tree, Tag):
        return tree.find("tr") is None
    return soup.find("table", class_="fatitem") is not None


def extract_records(
    markup: str, unit: float = INDENT_UNIT, context: Optional[str] = None
) -> list[CommentRecord]:
    """Parse every comment block into a record, preserving source order."""
    if unit <= 0:
        raise ValueError(f"indent unit must be positive, got {unit}")
    if not markup or not markup.strip():
        return []

    soup = BeautifulSoup(markup, "html.parser")
    blocks = soup.find_all("tr", class_="comtr")
    if not blocks:
        if _is_empty_thread(soup):
            return []
        raise ParseError("zero comment blocks recovered", context=context)

    records: list[CommentRecord] = []
    seen: set[int] = set()
    for block in blocks:
        record = parse_record(block, unit)
        if record.id:
            if record.id in seen:
                continue
            seen.add(record.id)
        else:
            logger.debug("comment_without_id", context=context, depth=record.depth)
            record.author = None
            record.body = None
        records.append(record)
    return records


def build_tree(records: list[CommentRecord]) -> list[Comment]:
    """
    Rebuild the forest from depth-labelled records in document order.

    Depth jumps of more than one level are kept as declared; the node simply
    attaches to the nearest shallower node on the stack.
    """
    roots: list[_Node] = []
    stack: list[_Node] = []
    for record in records:
        node = _Node(record)
        while stack and stack[-1].record.depth >= record.depth:
            stack.pop()
        if stack:
            stack[-1].children.append(node)
        else:
            roots.append(node)
        stack.append(node)
    return [root.freeze() for root in roots]


def build_forest(
    markup: str, unit: float = INDENT_UNIT, context: Optional[str] = None
) -> list[Comment]:
    """
    Parse an item page into a nested comment forest.

    Blank markup yields an empty forest. Raises ParseError when the page has
    content but no comment blocks and is not a recognisable empty thread.
    """
    records = extract_records(markup, unit=unit, context=context)
    forest = build_tree(records)
    placeholders = sum(1 for r in records if r.body is None)
    if placeholders:
        logger.debug("comment_placeholders", context=context, count=placeholders)
    return forest
