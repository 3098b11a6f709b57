"""Chooses the fetch method for a page: HTTP, headless browser or minimal.

:func:`get_content` is the single entry point used by the pipeline.  It
tries a plain HTTP fetch first and escalates to the browser only when the
response is unusable or looks client-rendered.  Article pages get one last
bare "minimal" request before giving up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

import httpx

from news_radar.config.settings import Settings
from news_radar.core.exceptions import FetchError
from news_radar.scraper.config import MIN_USABLE_HTML_LENGTH, MINIMAL_HEADERS
from news_radar.scraper.dynamic_content import detect_dynamic_content_needs, requires_browser
from news_radar.scraper.http_fetcher import FetchResult, RobotsCache, fetch_url
from news_radar.scraper.playwright_fetcher import BrowserManager, fetch_url_browser
from news_radar.scraper.protection import validate_content

__all__ = [
    "FetchOptions",
    "PageContent",
    "detect_dynamic_content_needs",
    "ensure_scheme",
    "get_content",
    "requires_browser",
]

logger = logging.getLogger(__name__)

FetchMethod = Literal["http", "browser", "minimal"]


@dataclass
class FetchOptions:
    """Per-job fetch behaviour."""

    http_timeout: float = 30.0
    browser_timeout: float = 60.0
    respect_robots: bool = True
    use_browser: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> FetchOptions:
        return cls(
            http_timeout=settings.http_timeout_seconds,
            browser_timeout=settings.browser_timeout_seconds,
            respect_robots=settings.respect_robots_txt,
            use_browser=settings.use_browser_fallback,
        )


@dataclass
class PageContent:
    """HTML of a page together with how it was obtained."""

    html: str
    method: FetchMethod
    final_url: str


def ensure_scheme(url: str) -> str:
    """Prefix ``https://`` to URLs without an HTTP scheme."""
    url = url.strip()
    if not url.lower().startswith(("http://", "https://")):
        return f"https://{url}"
    return url


def _is_usable(result: FetchResult | None, *, is_article: bool) -> bool:
    if result is None or not result.ok:
        return False
    validation = validate_content(result.html, is_article=is_article)
    if validation.is_error_page:
        return False
    # Blank renders and detached-page placeholders are not content.
    return len(result.html) >= MIN_USABLE_HTML_LENGTH or validation.has_content


async def _try_browser(
    url: str,
    *,
    browser: BrowserManager,
    is_article: bool,
    timeout: float,
) -> FetchResult | None:
    try:
        return await fetch_url_browser(url, manager=browser, is_article=is_article, timeout=timeout)
    except FetchError as exc:
        logger.warning("scraper: browser unavailable for %s: %s", url, exc)
        return None


async def get_content(
    url: str,
    *,
    is_article: bool,
    client: httpx.AsyncClient,
    browser: BrowserManager | None = None,
    options: FetchOptions | None = None,
    robots_cache: RobotsCache | None = None,
) -> PageContent:
    """Fetch *url* with the cheapest method that yields usable HTML.

    Args:
        url: Page URL; ``https://`` is assumed when the scheme is missing.
        is_article: ``True`` for article pages, ``False`` for source
            listing pages.
        client: Shared HTTP client.
        browser: Shared browser manager, or ``None`` to never use a browser.
        options: Timeouts and feature switches.
        robots_cache: Shared robots.txt cache for the job.

    Returns:
        A :class:`PageContent`.

    Raises:
        FetchError: If no method produced usable HTML, or robots.txt
            disallows the URL.
    """
    options = options or FetchOptions()
    robots_cache = robots_cache if robots_cache is not None else {}
    url = ensure_scheme(url)
    use_browser = browser is not None and options.use_browser

    http = await fetch_url(
        url,
        client=client,
        timeout=options.http_timeout,
        respect_robots=options.respect_robots,
        robots_cache=robots_cache,
    )
    if http.error == "robots.txt disallowed":
        raise FetchError("robots.txt disallowed", url)

    target = http.final_url or url

    if http.ok and len(http.html) > MIN_USABLE_HTML_LENGTH and not http.needs_browser:
        if not is_article and use_browser and detect_dynamic_content_needs(http.html):
            logger.info("scraper: dynamic listing page, escalating %s to browser", target)
            rendered = await _try_browser(
                target, browser=browser, is_article=False, timeout=options.browser_timeout
            )
            if _is_usable(rendered, is_article=False):
                return PageContent(rendered.html, "browser", rendered.final_url or target)
            logger.info("scraper: browser escalation failed, keeping HTTP content for %s", target)
        return PageContent(http.html, "http", target)

    logger.info(
        "scraper: HTTP insufficient for %s (error=%s, length=%d, needs_browser=%s)",
        url,
        http.error,
        len(http.html or ""),
        http.needs_browser,
    )

    if use_browser:
        rendered = await _try_browser(
            target, browser=browser, is_article=is_article, timeout=options.browser_timeout
        )
        if _is_usable(rendered, is_article=is_article):
            return PageContent(rendered.html, "browser", rendered.final_url or target)

    if is_article:
        minimal = await fetch_url(
            url,
            client=client,
            timeout=options.http_timeout,
            respect_robots=options.respect_robots,
            robots_cache=robots_cache,
            headers=MINIMAL_HEADERS,
        )
        if _is_usable(minimal, is_article=True):
            logger.info("scraper: minimal fetch succeeded for %s", url)
            return PageContent(minimal.html, "minimal", minimal.final_url or url)

    if http.ok and not (http.protection and http.protection.detected):
        logger.info("scraper: falling back to unescalated HTTP content for %s", url)
        return PageContent(http.html, "http", target)

    raise FetchError(f"All fetch methods failed for {url}", url)
