"""Link checking for Markdown books."""

from .book import BookError, book_from_render_context, load_book
from .checker import CheckReport, LinkChecker, check_links
from .config import BookcheckConfig, ConfigError, LinkcheckConfig, load_config
from .errors import (
    BrokenLinks,
    FetchError,
    LinkFailure,
    NetworkFailure,
    UnresolvedReference,
    UnsuccessfulStatus,
)
from .links import External, Internal, Link, classify, collect_links, line_number
from .models import Book, Chapter

__version__ = "0.1.0"

__all__ = [
    "Book",
    "BookError",
    "BookcheckConfig",
    "BrokenLinks",
    "Chapter",
    "CheckReport",
    "ConfigError",
    "External",
    "FetchError",
    "Internal",
    "Link",
    "LinkChecker",
    "LinkFailure",
    "LinkcheckConfig",
    "NetworkFailure",
    "UnresolvedReference",
    "UnsuccessfulStatus",
    "book_from_render_context",
    "check_links",
    "classify",
    "collect_links",
    "line_number",
    "load_book",
    "load_config",
]
