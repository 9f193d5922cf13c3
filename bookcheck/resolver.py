"""Resolution of book-internal references."""

from __future__ import annotations

import posixpath
from pathlib import PurePosixPath
from typing import Dict, Iterator, Optional, Set
from urllib.parse import unquote

from .errors import UnresolvedReference
from .links import Link
from .logging import get_logger
from .markdown import collect_anchors
from .models import Book, Chapter


class InternalResolver:
    """Checks that internal references point at a chapter, anchor or asset.

    Resolution rules, all case-sensitive:

    * The fragment starts at the first ``#``; a ``?query`` on the path is
      ignored. Path and fragment are percent-decoded.
    * An empty path targets the linking chapter itself.
    * A path starting with ``/`` is relative to the book root, any other path
      to the directory of the linking chapter. ``.`` and ``..`` segments are
      collapsed and a path climbing above the root never resolves.
    * Candidates are tried in order: the path as written, ``.html`` swapped
      for ``.md`` (``index.html`` also tries ``README.md``), then
      ``index.md`` and ``README.md`` inside the path when it ends with ``/``
      or has no suffix.
    * A candidate naming a chapter resolves to it. Otherwise a candidate that
      exists as a file under the book's source root resolves as an asset.
    * Fragments are verified against the anchors of chapter targets only.
    """

    INDEX_NAMES = ("index.md", "README.md")

    def __init__(self, book: Book) -> None:
        self.book = book
        self.logger = get_logger("resolver")
        self._chapters: Dict[PurePosixPath, Chapter] = {}
        for chapter in book.iter_chapters():
            if chapter.path is not None:
                self._chapters.setdefault(chapter.path, chapter)
        self._anchors: Dict[int, Set[str]] = {}

    def resolve(self, link: Link, reference: str) -> Optional[UnresolvedReference]:
        """Return ``None`` when ``reference`` resolves, else the failure to report."""
        path_part, _, fragment = reference.partition("#")
        path_part = unquote(path_part.split("?", 1)[0])
        fragment = unquote(fragment)

        if not path_part:
            return self._check_anchor(link, reference, link.chapter, fragment)

        target = self._normalize(link.chapter, path_part)
        if target is None:
            self.logger.debug("%s escapes the book root", link)
            return UnresolvedReference(link, reference=reference)

        as_directory = path_part.endswith("/")
        for candidate in self._candidates(target, as_directory=as_directory):
            chapter = self._chapters.get(candidate)
            if chapter is not None:
                return self._check_anchor(link, reference, chapter, fragment)

        for candidate in self._candidates(target, as_directory=as_directory):
            if self._asset_exists(candidate):
                self.logger.debug("%s resolved to asset %s", link, candidate)
                return None

        return UnresolvedReference(link, reference=reference)

    def anchors(self, chapter: Chapter) -> Set[str]:
        key = id(chapter)
        if key not in self._anchors:
            self._anchors[key] = collect_anchors(chapter.content)
        return self._anchors[key]

    def _check_anchor(
        self, link: Link, reference: str, chapter: Chapter, fragment: str
    ) -> Optional[UnresolvedReference]:
        if not fragment or fragment in self.anchors(chapter):
            return None
        return UnresolvedReference(
            link,
            reference=reference,
            anchor=fragment,
            target=chapter.path or PurePosixPath(chapter.name),
        )

    @staticmethod
    def _normalize(chapter: Chapter, path: str) -> Optional[PurePosixPath]:
        if path.startswith("/"):
            base = ""
            path = path.lstrip("/")
        else:
            base = str(chapter.path.parent) if chapter.path is not None else ""
        joined = posixpath.normpath(posixpath.join(base, path)) if path else "."
        if joined == ".." or joined.startswith("../"):
            return None
        return PurePosixPath(joined)

    def _candidates(self, target: PurePosixPath, *, as_directory: bool) -> Iterator[PurePosixPath]:
        if not as_directory and str(target) != ".":
            yield target
            if target.suffix == ".html":
                yield target.with_suffix(".md")
                if target.name == "index.html":
                    yield target.with_name("README.md")
        if as_directory or str(target) == "." or not target.suffix:
            for name in self.INDEX_NAMES:
                yield target / name

    def _asset_exists(self, candidate: PurePosixPath) -> bool:
        if self.book.root is None or str(candidate) == ".":
            return False
        return (self.book.root / str(candidate)).is_file()


__all__ = ["InternalResolver"]
