"""Book and chapter models shared across bookcheck components."""

from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional


@dataclass
class Chapter:
    """One unit of Markdown content and its location inside the book."""

    name: str
    content: str
    path: Optional[PurePosixPath] = None
    sub_items: List["Chapter"] = field(default_factory=list)

    @property
    def is_draft(self) -> bool:
        return self.path is None


@dataclass
class Book:
    """Ordered tree of chapters, optionally backed by a source directory on disk."""

    sections: List[Chapter] = field(default_factory=list)
    root: Optional[Path] = None

    def iter_chapters(self) -> Iterator[Chapter]:
        """Yield every chapter depth-first, each parent before its sub-items."""
        stack = list(reversed(self.sections))
        while stack:
            chapter = stack.pop()
            yield chapter
            stack.extend(reversed(chapter.sub_items))

    def find_chapter(self, path: PurePosixPath) -> Optional[Chapter]:
        for chapter in self.iter_chapters():
            if chapter.path == path:
                return chapter
        return None
