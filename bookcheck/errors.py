"""Per-link failures and the composite error raised for a broken book."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import ClassVar, Dict, List, Optional, Sequence

from .links import Link


@dataclass(frozen=True)
class LinkFailure:
    """Base class for a single broken link."""

    kind: ClassVar[str] = "failure"

    link: Link

    @property
    def reason(self) -> str:
        raise NotImplementedError

    def as_dict(self) -> Dict[str, object]:
        return {
            "url": self.link.url,
            "chapter": self.link.chapter_path,
            "line": self.link.line_number(),
            "kind": self.kind,
            "reason": self.reason,
            "message": str(self),
        }

    def __str__(self) -> str:
        return f"{self.link}: {self.reason}"


@dataclass(frozen=True)
class UnresolvedReference(LinkFailure):
    """An internal reference whose chapter, file or anchor does not exist."""

    kind: ClassVar[str] = "unresolved"

    reference: str = ""
    anchor: Optional[str] = None
    target: Optional[PurePosixPath] = None

    @property
    def reason(self) -> str:
        if self.anchor is not None:
            return f'reference not found (no anchor "#{self.anchor}" in {self.target})'
        return "reference not found"


@dataclass(frozen=True)
class UnsuccessfulStatus(LinkFailure):
    """An external link answered with a non-2xx status."""

    kind: ClassVar[str] = "status"

    status: int = 0

    @property
    def reason(self) -> str:
        return f"HTTP {self.status}"


@dataclass(frozen=True)
class NetworkFailure(LinkFailure):
    """An external link could not be fetched at all."""

    kind: ClassVar[str] = "network"

    detail: str = ""

    @property
    def reason(self) -> str:
        return f"network error: {self.detail}"


class BrokenLinks(RuntimeError):
    """Raised when one or more links in a book are broken."""

    def __init__(self, errors: Sequence[LinkFailure]) -> None:
        self.errors: List[LinkFailure] = list(errors)
        lines = ["there are broken links"]
        lines.extend(f"  {error}" for error in self.errors)
        super().__init__("\n".join(lines))


class FetchError(RuntimeError):
    """Raised when a URL cannot be fetched (DNS, timeout, refused connection)."""


__all__ = [
    "BrokenLinks",
    "FetchError",
    "LinkFailure",
    "NetworkFailure",
    "UnresolvedReference",
    "UnsuccessfulStatus",
]
