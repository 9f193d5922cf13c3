"""Building a :class:`Book` from disk or from an mdBook render context."""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath
from typing import Any, List, Mapping, Optional, Tuple

from .logging import get_logger
from .markdown import tokenize
from .models import Book, Chapter

SUMMARY_FILENAME = "SUMMARY.md"

_NUMBERED_PATTERN = re.compile(r"^([ \t]*)(?:[-*+]|\d+\.)[ \t]+(\[.*)$")
_AFFIX_PATTERN = re.compile(r"^\[.*\]\(.*\)\s*$")
_SEPARATOR_PATTERN = re.compile(r"^ {0,3}(?:-{3,}|\*{3,}|_{3,})\s*$")

logger = get_logger("book")


class BookError(RuntimeError):
    """Raised when a book's structure cannot be loaded."""


def load_book(root: Path, src: str = "src") -> Book:
    """Load the book whose sources live in ``root / src``.

    Chapters follow ``SUMMARY.md`` when present; otherwise every Markdown file
    under the source directory becomes a top-level chapter in path order.
    """
    src_dir = (root / src).resolve()
    if not src_dir.is_dir():
        raise FileNotFoundError(f"Book source directory not found: {src_dir}")

    summary = src_dir / SUMMARY_FILENAME
    if summary.is_file():
        logger.debug("Reading chapter layout from %s", summary)
        sections = _parse_summary(summary.read_text(encoding="utf-8"), src_dir)
    else:
        logger.debug("No %s in %s; using every Markdown file", SUMMARY_FILENAME, src_dir)
        sections = [
            _read_chapter(src_dir, path.stem, PurePosixPath(path.relative_to(src_dir).as_posix()))
            for path in sorted(src_dir.rglob("*.md"))
            if path.name != SUMMARY_FILENAME
        ]
    book = Book(sections=sections, root=src_dir)
    logger.debug("Loaded %d chapters", sum(1 for _ in book.iter_chapters()))
    return book


def book_from_render_context(payload: Mapping[str, Any]) -> Book:
    """Build a book from the JSON document mdBook hands to its backends."""
    book_data = payload.get("book")
    if not isinstance(book_data, Mapping):
        raise BookError("Render context has no `book` table")
    items = book_data.get("sections", book_data.get("items", []))
    if not isinstance(items, list):
        raise BookError("Render context `book.sections` must be a list")

    root: Optional[Path] = None
    if isinstance(payload.get("root"), str):
        config = payload.get("config")
        book_config = config.get("book") if isinstance(config, Mapping) else None
        src = book_config.get("src", "src") if isinstance(book_config, Mapping) else "src"
        root = Path(payload["root"]) / str(src)

    sections = [chapter for chapter in map(_chapter_from_item, items) if chapter is not None]
    return Book(sections=sections, root=root)


def _chapter_from_item(item: Any) -> Optional[Chapter]:
    # Separators and part titles carry no content.
    if not isinstance(item, Mapping) or "Chapter" not in item:
        return None
    data = item["Chapter"]
    if not isinstance(data, Mapping):
        raise BookError("Malformed chapter entry in render context")
    path = data.get("path")
    sub_items = data.get("sub_items") or []
    return Chapter(
        name=str(data.get("name", "")),
        content=str(data.get("content") or ""),
        path=PurePosixPath(path) if isinstance(path, str) and path else None,
        sub_items=[chapter for chapter in map(_chapter_from_item, sub_items) if chapter is not None],
    )


def _parse_summary(text: str, src_dir: Path) -> List[Chapter]:
    sections: List[Chapter] = []
    stack: List[Tuple[int, Chapter]] = []

    for line in text.splitlines():
        if not line.strip():
            continue
        numbered = _NUMBERED_PATTERN.match(line)
        if numbered:
            chapter = _summary_entry(numbered.group(2), src_dir)
            if chapter is None:
                continue
            indent = len(numbered.group(1).expandtabs(4))
            while stack and stack[-1][0] >= indent:
                stack.pop()
            if stack:
                stack[-1][1].sub_items.append(chapter)
            else:
                sections.append(chapter)
            stack.append((indent, chapter))
            continue
        stack.clear()
        if line.lstrip().startswith("#") or _SEPARATOR_PATTERN.match(line):
            continue
        if _AFFIX_PATTERN.match(line.strip()):
            chapter = _summary_entry(line.strip(), src_dir)
            if chapter is not None:
                sections.append(chapter)
    return sections


def _summary_entry(text: str, src_dir: Path) -> Optional[Chapter]:
    event = next((event for event in tokenize(text) if event.kind == "start"), None)
    if event is None:
        return None
    name = event.text.strip()
    if not event.destination:
        return Chapter(name=name, content="")
    return _read_chapter(src_dir, name, PurePosixPath(event.destination))


def _read_chapter(src_dir: Path, name: str, path: PurePosixPath) -> Chapter:
    location = src_dir / str(path)
    try:
        content = location.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise BookError(f"Chapter {name!r} points at missing file {path}") from exc
    return Chapter(name=name, content=content, path=path)


__all__ = ["BookError", "SUMMARY_FILENAME", "book_from_render_context", "load_book"]
