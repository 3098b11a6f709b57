"""Async HTTP fetcher with robots.txt support and browser-escalation hints.

Uses ``httpx`` for all HTTP requests.  Detects JavaScript-only page shells,
bot-protection pages and client-rendered pages and sets
``needs_browser=True`` on the result so the caller can retry with
:mod:`news_radar.scraper.playwright_fetcher`.
"""

from __future__ import annotations

import logging
import urllib.parse
import urllib.robotparser
from dataclasses import dataclass

import httpx

from news_radar.scraper.config import (
    BINARY_CONTENT_TYPES,
    BROWSER_HEADERS,
    JS_SHELL_BODY_THRESHOLD,
    ROBOTS_USER_AGENT,
    ROBOTS_USER_AGENT_FALLBACK,
)
from news_radar.scraper.dynamic_content import requires_browser
from news_radar.scraper.protection import ProtectionInfo, detect_protection

logger = logging.getLogger(__name__)

#: Parsed robots.txt per origin; ``None`` means "could not fetch, allow all".
RobotsCache = dict[str, "urllib.robotparser.RobotFileParser | None"]


# ---------------------------------------------------------------------------
# Result dataclass
# ---------------------------------------------------------------------------


@dataclass
class FetchResult:
    """Result of a single fetch attempt (HTTP or browser).

    Attributes:
        html: Raw HTML string, or ``None`` if the fetch failed or was skipped.
        status_code: HTTP status code, or ``None`` on network error.
        final_url: URL after following redirects, or ``None`` on error.
        error: Human-readable error description, or ``None`` on success.
        needs_browser: ``True`` if the response should be retried with a
            headless browser (JS shell, protection page, client rendering).
        protection: Protection detection outcome, when one was run.
    """

    html: str | None
    status_code: int | None
    final_url: str | None
    error: str | None
    needs_browser: bool = False
    protection: ProtectionInfo | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.html)


# ---------------------------------------------------------------------------
# robots.txt helpers
# ---------------------------------------------------------------------------


async def _is_allowed_by_robots(
    url: str,
    client: httpx.AsyncClient,
    robots_cache: RobotsCache,
    timeout: float,
) -> bool:
    """Return ``True`` if the URL is allowed by the site's robots.txt.

    The parsed robots.txt is cached in ``robots_cache`` keyed by origin
    (scheme + host).  On any network error or non-200 response the origin
    is considered unrestricted (fail-open).

    Args:
        url: Target URL.
        client: Shared HTTP client used to download robots.txt.
        robots_cache: Mutable dict used as an origin-level TTL-less cache.
        timeout: Seconds to wait when fetching robots.txt.

    Returns:
        ``True`` if allowed (or if the check fails), ``False`` if disallowed.
    """
    parsed = urllib.parse.urlparse(url)
    origin = f"{parsed.scheme}://{parsed.netloc}"

    if origin not in robots_cache:
        parser: urllib.robotparser.RobotFileParser | None = None
        try:
            response = await client.get(
                f"{origin}/robots.txt",
                timeout=timeout,
                follow_redirects=True,
                headers={"User-Agent": BROWSER_HEADERS["User-Agent"]},
            )
            if response.status_code == 200:
                parser = urllib.robotparser.RobotFileParser()
                parser.parse(response.text.splitlines())
        except httpx.HTTPError as exc:
            logger.debug("scraper: robots.txt fetch failed for %s: %s, allowing", origin, exc)
        robots_cache[origin] = parser

    parser = robots_cache[origin]
    if parser is None:
        return True
    # Both our own token and the wildcard group must allow the URL.
    return parser.can_fetch(ROBOTS_USER_AGENT, url) and parser.can_fetch(
        ROBOTS_USER_AGENT_FALLBACK, url
    )


# ---------------------------------------------------------------------------
# Content checks
# ---------------------------------------------------------------------------


def _is_binary_content_type(content_type: str) -> bool:
    """Return ``True`` if the Content-Type indicates a non-text binary resource."""
    ct = content_type.lower().split(";")[0].strip()
    return any(ct.startswith(prefix) for prefix in BINARY_CONTENT_TYPES)


def _is_js_shell(html: str) -> bool:
    """Return ``True`` if the page is too short to contain real content.

    A very short body after stripping whitespace is a strong signal that the
    page requires JavaScript execution to populate its content.
    """
    return len(html.strip()) < JS_SHELL_BODY_THRESHOLD


# ---------------------------------------------------------------------------
# Public fetch function
# ---------------------------------------------------------------------------


async def fetch_url(
    url: str,
    *,
    client: httpx.AsyncClient,
    timeout: float,
    respect_robots: bool,
    robots_cache: RobotsCache,
    headers: dict[str, str] | None = None,
) -> FetchResult:
    """Fetch a single URL using httpx with robots.txt checking.

    Performs the following checks in order:

    1. **robots.txt**: if ``respect_robots`` is ``True``, fetches and caches
       the robots.txt for the URL's origin.  Returns an error result if
       disallowed.
    2. **HTTP GET**: sends a ``GET`` with browser-like headers (or
       ``headers`` when given) and follows redirects.
    3. **HTTP error status**: returns an error result; 403/429/503 responses
       are checked for bot protection and flagged for a browser retry.
    4. **Binary content-type**: returns a skip result for PDFs, images, etc.
    5. **Browser escalation**: sets ``needs_browser=True`` for JS shells,
       protection pages and pages :func:`requires_browser` flags.

    Network errors never raise; they are reported in ``error``.

    Args:
        url: Target URL to fetch.
        client: Shared :class:`httpx.AsyncClient` instance.
        timeout: Request timeout in seconds.
        respect_robots: Whether to honour robots.txt disallow rules.
        robots_cache: Mutable dict used as an origin-level robots.txt cache.
        headers: Optional request headers replacing the browser-like set.

    Returns:
        A :class:`FetchResult` instance.
    """
    # 1. robots.txt check
    if respect_robots and not await _is_allowed_by_robots(url, client, robots_cache, timeout):
        logger.info("scraper: robots.txt disallows %s", url)
        return FetchResult(
            html=None,
            status_code=None,
            final_url=url,
            error="robots.txt disallowed",
        )

    # 2. HTTP GET
    try:
        response = await client.get(
            url,
            timeout=timeout,
            follow_redirects=True,
            headers=headers or BROWSER_HEADERS,
        )
    except httpx.TimeoutException:
        logger.warning("scraper: timeout fetching %s", url)
        return FetchResult(html=None, status_code=None, final_url=url, error="timeout")
    except httpx.TooManyRedirects:
        logger.warning("scraper: too many redirects for %s", url)
        return FetchResult(
            html=None, status_code=None, final_url=url, error="too many redirects"
        )
    except httpx.RequestError as exc:
        logger.warning("scraper: request error for %s: %s", url, exc)
        return FetchResult(
            html=None, status_code=None, final_url=url, error=f"request error: {exc}"
        )

    final_url = str(response.url)

    # 3. HTTP error status
    if response.status_code >= 400:
        logger.info("scraper: HTTP %d for %s", response.status_code, url)
        protection = None
        if response.status_code in (403, 429, 503):
            protection = detect_protection(
                response.status_code, response.text, dict(response.headers)
            )
        return FetchResult(
            html=None,
            status_code=response.status_code,
            final_url=final_url,
            error=f"HTTP {response.status_code}",
            needs_browser=bool(protection and protection.detected),
            protection=protection,
        )

    # 4. Binary content-type check
    content_type = response.headers.get("content-type", "")
    if _is_binary_content_type(content_type):
        logger.info("scraper: skipping binary content-type '%s' for %s", content_type, url)
        return FetchResult(
            html=None,
            status_code=response.status_code,
            final_url=final_url,
            error=f"binary content-type: {content_type}",
        )

    try:
        html = response.text
    except Exception as exc:  # noqa: BLE001
        logger.warning("scraper: decode error for %s: %s", url, exc)
        return FetchResult(
            html=None,
            status_code=response.status_code,
            final_url=final_url,
            error=f"decode error: {exc}",
        )

    # 5. Browser escalation hints
    protection = detect_protection(response.status_code, html, dict(response.headers))
    if _is_js_shell(html):
        logger.info(
            "scraper: JS-only shell detected for %s (body_len=%d)",
            url,
            len(html.strip()),
        )
        needs_browser = True
    else:
        needs_browser = protection.detected or requires_browser(html)

    return FetchResult(
        html=html,
        status_code=response.status_code,
        final_url=final_url,
        error=None,
        needs_browser=needs_browser,
        protection=protection,
    )
