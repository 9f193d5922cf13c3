"""Link discovery, location and classification."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Union
from urllib.parse import SplitResult, urlsplit

from .logging import get_logger
from .markdown import tokenize
from .models import Chapter

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]+$")
_AUTHORITY_SCHEMES = {"http", "https", "ftp", "ws", "wss"}

logger = get_logger("links")


@dataclass(frozen=True)
class Link:
    """A destination discovered at ``offset`` bytes into a chapter's content."""

    url: str
    offset: int
    chapter: Chapter = field(compare=False, repr=False)

    def line_number(self) -> int:
        return line_number(self.chapter.content, self.offset)

    @property
    def chapter_path(self) -> str:
        return str(self.chapter.path) if self.chapter.path is not None else self.chapter.name

    def __str__(self) -> str:
        return f'"{self.url}" in {self.chapter_path}#{self.line_number()}'


@dataclass(frozen=True)
class External:
    """Absolute URL pointing outside the book."""

    url: SplitResult

    @property
    def scheme(self) -> str:
        return self.url.scheme


@dataclass(frozen=True)
class Internal:
    """Reference to a chapter, anchor or asset inside the book."""

    reference: str


Classification = Union[External, Internal]


def line_number(content: str, offset: int) -> int:
    """Return the 1-based line holding byte ``offset`` of ``content``."""
    data = content.encode("utf-8")
    if offset > len(data):
        raise ValueError(
            f"Link has invalid offset. Got {offset} but chapter is only {len(data)} bytes long."
        )
    return data.count(b"\n", 0, offset) + 1


def collect_links(chapter: Chapter) -> List[Link]:
    """Find all the links and images in a chapter, in document order."""
    content = chapter.content
    if not content:
        return []

    ascii_only = content.isascii()
    links: List[Link] = []
    # Start events arrive in increasing order, so byte offsets are accumulated
    # one slice at a time.
    char_pos = byte_pos = 0
    for event in tokenize(content):
        if event.kind != "start":
            continue
        if ascii_only:
            offset = event.offset
        else:
            byte_pos += len(content[char_pos : event.offset].encode("utf-8"))
            char_pos = event.offset
            offset = byte_pos
        link = Link(url=event.destination, offset=offset, chapter=chapter)
        logger.debug("Found %s", link)
        links.append(link)
    return links


def classify(url: str) -> Classification:
    """Decide whether ``url`` leaves the book.

    Anything that parses as an absolute URL is external; everything else,
    including strings ``urlsplit`` rejects, is a book-internal reference.
    Single-letter schemes are treated as Windows drive letters, and web schemes
    must name a host.
    """
    candidate = f"https:{url}" if url.startswith("//") else url
    try:
        parts = urlsplit(candidate)
    except ValueError:
        return Internal(url)
    if not parts.scheme or not _SCHEME_PATTERN.match(parts.scheme):
        return Internal(url)
    if parts.scheme in _AUTHORITY_SCHEMES and not parts.netloc:
        return Internal(url)
    return External(parts)


__all__ = [
    "Classification",
    "External",
    "Internal",
    "Link",
    "classify",
    "collect_links",
    "line_number",
]
