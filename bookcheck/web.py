"""Fetching and judging external links."""

from __future__ import annotations

from http.client import HTTPException
from typing import Callable, Optional, Union
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlsplit, urlunsplit
from urllib.request import Request, urlopen

from .config import DEFAULT_USER_AGENT, LinkcheckConfig
from .errors import FetchError, LinkFailure, NetworkFailure, UnsuccessfulStatus
from .links import External, Link
from .logging import get_logger

FetchResult = Union[int, FetchError]

_PATH_SAFE = "/%:@!$&'()*+,;=~"
_QUERY_SAFE = _PATH_SAFE + "?"


def encode_url(url: str) -> str:
    """Percent-encode ``url`` so it can go on the wire.

    Non-ASCII and other unsafe characters in the path, query and fragment are
    escaped as UTF-8, existing escapes are kept and an internationalized host
    is IDNA-encoded. Already-encoded URLs come back unchanged.
    """
    parts = urlsplit(url)
    return urlunsplit(
        (
            parts.scheme,
            _encode_netloc(parts.netloc),
            quote(parts.path, safe=_PATH_SAFE),
            quote(parts.query, safe=_QUERY_SAFE),
            quote(parts.fragment, safe=_QUERY_SAFE),
        )
    )


def _encode_netloc(netloc: str) -> str:
    userinfo, at, hostport = netloc.rpartition("@")
    if hostport.startswith("["):
        host, port = hostport, ""
    else:
        host, colon, port = hostport.partition(":")
        port = colon + port
    if not host.isascii():
        host = host.encode("idna").decode("ascii")
    if userinfo:
        userinfo = quote(userinfo, safe="%:!$&'()*+,;=~")
    return f"{userinfo}{at}{host}{port}"


class HttpFetcher:
    """Issues a single GET per URL and reports the HTTP status code."""

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent

    def fetch(self, url: str) -> int:
        """Return the response status for ``url``.

        Error statuses are returned like any other; only transport-level
        problems raise :class:`FetchError`.
        """
        try:
            request = Request(
                encode_url(url), headers={"User-Agent": self.user_agent}, method="GET"
            )
            with urlopen(request, timeout=self.timeout) as response:  # type: ignore[arg-type]
                return int(response.status)
        except HTTPError as exc:
            exc.close()
            return int(exc.code)
        except URLError as exc:
            raise FetchError(str(exc.reason)) from exc
        except (HTTPException, OSError, ValueError) as exc:
            raise FetchError(str(exc) or exc.__class__.__name__) from exc


class ExternalValidator:
    """Decides whether an external link is reachable."""

    WEB_SCHEMES = ("http", "https")

    def __init__(
        self,
        config: LinkcheckConfig,
        fetch: Callable[[str], int] | None = None,
    ) -> None:
        self.config = config
        if fetch is None:
            fetch = HttpFetcher(
                timeout=config.request_timeout, user_agent=config.user_agent
            ).fetch
        self._fetch = fetch
        self.logger = get_logger("web")

    def needs_fetch(self, url: External) -> bool:
        return self.config.follow_web_links and url.scheme in self.WEB_SCHEMES

    @staticmethod
    def fetch_target(url: External) -> str:
        """The URL actually requested; fragments never reach the server."""
        target = urlunsplit(url.url._replace(fragment=""))
        try:
            return encode_url(target)
        except ValueError:
            # Hosts the IDNA codec rejects are reported by the fetch itself.
            return target

    def validate(self, link: Link, url: External) -> Optional[LinkFailure]:
        """Fetch ``url`` when configured to and judge the outcome for ``link``."""
        if not self.needs_fetch(url):
            self.logger.debug('Ignoring "%s"', link.url)
            return None
        return self.judge(link, self.fetch_status(self.fetch_target(url)))

    def fetch_status(self, target: str) -> FetchResult:
        self.logger.debug('Fetching "%s"', target)
        try:
            return self._fetch(target)
        except FetchError as exc:
            return exc

    def judge(self, link: Link, result: FetchResult) -> Optional[LinkFailure]:
        if isinstance(result, FetchError):
            self.logger.debug("Fetch failed for %s: %s", link, result)
            return NetworkFailure(link, detail=str(result))
        if 200 <= result < 300:
            return None
        self.logger.debug("Unsuccessful status %d for %s", result, link)
        return UnsuccessfulStatus(link, status=result)


__all__ = ["ExternalValidator", "FetchResult", "HttpFetcher", "encode_url"]
