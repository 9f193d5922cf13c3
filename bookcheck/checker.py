"""Link checking pipeline for a whole book."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .config import LinkcheckConfig
from .errors import BrokenLinks, LinkFailure
from .links import Internal, Link, classify, collect_links
from .logging import get_logger
from .models import Book
from .resolver import InternalResolver
from .web import ExternalValidator, FetchResult


@dataclass
class CheckReport:
    """Every link discovered in a run and the subset that is broken."""

    links: List[Link] = field(default_factory=list)
    failures: List[LinkFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        if self.failures:
            raise BrokenLinks(self.failures)


class LinkChecker:
    """Extracts, classifies and validates every link in a book.

    Failures never stop the run. External URLs are fetched on a bounded thread
    pool, each distinct URL (fragment removed) at most once per run, and
    outcomes are stored by link position so the report keeps discovery order.
    """

    def __init__(
        self,
        config: LinkcheckConfig | None = None,
        *,
        fetch: Callable[[str], int] | None = None,
        validator: ExternalValidator | None = None,
    ) -> None:
        self.config = config or LinkcheckConfig()
        self.validator = validator or ExternalValidator(self.config, fetch)
        self.logger = get_logger("checker")

    def check(self, book: Book) -> CheckReport:
        self.logger.info("Checking for broken links")

        self.logger.debug("Finding all links")
        links: List[Link] = []
        for chapter in book.iter_chapters():
            links.extend(collect_links(chapter))
        self.logger.debug("Found %d links", len(links))

        resolver = InternalResolver(book)
        outcomes: List[Optional[LinkFailure]] = [None] * len(links)
        pending: Dict[str, List[Tuple[int, Link]]] = {}

        for index, link in enumerate(links):
            if self.config.is_excluded(link.url):
                self.logger.debug("Skipping excluded %s", link)
                continue
            target = classify(link.url)
            if isinstance(target, Internal):
                outcomes[index] = resolver.resolve(link, target.reference)
            elif self.validator.needs_fetch(target):
                url = self.validator.fetch_target(target)
                pending.setdefault(url, []).append((index, link))
            else:
                outcomes[index] = self.validator.validate(link, target)

        if pending:
            results = self._fetch_all(list(pending))
            for url, entries in pending.items():
                for index, link in entries:
                    outcomes[index] = self.validator.judge(link, results[url])

        failures = [outcome for outcome in outcomes if outcome is not None]
        for failure in failures:
            self.logger.debug("Broken link %s", failure)
        if failures:
            self.logger.info("Found %d broken link(s) out of %d", len(failures), len(links))
        else:
            self.logger.info("All %d links are valid", len(links))
        return CheckReport(links=links, failures=failures)

    def _fetch_all(self, urls: List[str]) -> Dict[str, FetchResult]:
        workers = max(1, min(self.config.max_workers, len(urls)))
        self.logger.debug("Fetching %d distinct URLs with %d workers", len(urls), workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bookcheck-fetch") as pool:
            return dict(zip(urls, pool.map(self.validator.fetch_status, urls)))


def check_links(
    book: Book,
    config: LinkcheckConfig | None = None,
    *,
    fetch: Callable[[str], int] | None = None,
) -> None:
    """Check every link in ``book``.

    If there were any broken links, :class:`BrokenLinks` is raised carrying one
    entry per failure in discovery order.
    """
    LinkChecker(config, fetch=fetch).check(book).raise_for_failures()


__all__ = ["CheckReport", "LinkChecker", "check_links"]
