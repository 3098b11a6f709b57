"""Playwright-based headless browser fetcher for JavaScript-heavy pages.

A :class:`BrowserManager` owns one Chromium instance for the lifetime of a
scrape job and hands out isolated pages (each in its own browser context).
:func:`fetch_url_browser` navigates with progressively weaker wait
conditions, waits out DataDome interstitials and, for listing pages, coaxes
lazily loaded links into the DOM before returning the rendered HTML.

Install the Chromium browser binary once per machine::

    playwright install chromium
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from news_radar.core.exceptions import BrowserUnavailableError, NavigationError
from news_radar.scraper.config import (
    BROWSER_HEADERS,
    BROWSER_LAUNCH_ARGS,
    BROWSER_USER_AGENT,
    BROWSER_VIEWPORT,
    DATADOME_MAX_WAIT_SECONDS,
    DATADOME_POLL_INTERVAL_SECONDS,
    DATADOME_SETTLE_SECONDS,
    HTMX_INITIAL_WAIT_SECONDS,
    HTMX_MAX_TRIGGERS,
    HTMX_SETTLE_SECONDS,
    LINK_EXTRACTION_TIMEOUT_SECONDS,
    NAVIGATION_STRATEGIES,
    SCROLL_LINK_THRESHOLD,
    SCROLL_WAIT_SECONDS,
)
from news_radar.scraper.http_fetcher import FetchResult
from news_radar.scraper.protection import detect_protection

logger = logging.getLogger(__name__)

#: Substrings of Playwright error messages raised when the page went away.
_CLOSED_PAGE_MARKERS: tuple[str, ...] = (
    "detached",
    "target closed",
    "has been closed",
    "execution context was destroyed",
)

_DETACHED_HTML = "<html><body><p>Page became detached during navigation</p></body></html>"

_JS_DATADOME_CHALLENGE = """() => {
    const script = document.querySelector('script[src*="captcha-delivery.com"]') !== null;
    const text = document.body ? document.body.textContent || '' : '';
    return script || text.includes('Please enable JS and disable any ad blocker');
}"""

_JS_HAS_DATADOME = """() => {
    const html = document.documentElement ? document.documentElement.innerHTML : '';
    return html.toLowerCase().includes('datadome');
}"""

_JS_HAS_HTMX = """() => !!window.htmx || document.querySelector('[hx-get], [data-hx-get]') !== null"""

_JS_TRIGGER_HTMX = """(limit) => {
    const elements = Array.from(document.querySelectorAll('[hx-get], [data-hx-get]')).slice(0, limit);
    elements.forEach((el) => el.click());
    return elements.length;
}"""

_JS_COUNT_LINKS = "() => document.querySelectorAll('a[href]').length"

_JS_SCROLL_HALF = "() => window.scrollTo(0, document.body.scrollHeight / 2)"


def _is_closed_page_error(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _CLOSED_PAGE_MARKERS)


async def _close_quietly(target: Page | BrowserContext) -> None:
    try:
        await target.close()
    except PlaywrightError as exc:
        logger.debug("scraper: error closing browser %s: %s", type(target).__name__, exc)


# ---------------------------------------------------------------------------
# Browser lifecycle
# ---------------------------------------------------------------------------


class BrowserManager:
    """Lazily launched, shared headless Chromium.

    The browser is started on the first :meth:`page` call and reused until
    :meth:`close`.  Concurrent first calls launch only one browser.

    Args:
        headless: Run Chromium without a window.
        executable_path: Optional path to a Chromium binary to use instead of
            the one downloaded by ``playwright install``.
    """

    def __init__(self, *, headless: bool = True, executable_path: str | None = None) -> None:
        self._headless = headless
        self._executable_path = executable_path
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def _ensure_browser(self) -> Browser:
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            try:
                if self._playwright is None:
                    self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(
                    headless=self._headless,
                    executable_path=self._executable_path,
                    args=BROWSER_LAUNCH_ARGS,
                )
            except PlaywrightError as exc:
                raise BrowserUnavailableError(
                    f"Could not launch Chromium: {exc}. "
                    "Install it with: playwright install chromium"
                ) from exc
            logger.info("scraper: launched headless browser")
            return self._browser

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Yield a fresh page in its own context; both are always closed."""
        browser = await self._ensure_browser()
        context = await browser.new_context(
            user_agent=BROWSER_USER_AGENT,
            viewport=BROWSER_VIEWPORT,
            extra_http_headers={
                k: v for k, v in BROWSER_HEADERS.items() if k != "User-Agent"
            },
        )
        try:
            page = await context.new_page()
        except PlaywrightError:
            await _close_quietly(context)
            raise
        try:
            yield page
        finally:
            await _close_quietly(page)
            await _close_quietly(context)

    async def close(self) -> None:
        """Close the browser and stop Playwright."""
        browser, self._browser = self._browser, None
        pw, self._playwright = self._playwright, None
        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as exc:
                logger.debug("scraper: error closing browser: %s", exc)
        if pw is not None:
            await pw.stop()

    async def __aenter__(self) -> BrowserManager:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# Page helpers
# ---------------------------------------------------------------------------


async def _safe_evaluate(page: Page, expression: str, fallback: Any, arg: Any = None) -> Any:
    """Evaluate *expression*, returning *fallback* if the page went away."""
    if page.is_closed():
        return fallback
    try:
        if arg is None:
            return await page.evaluate(expression)
        return await page.evaluate(expression, arg)
    except PlaywrightError as exc:
        if _is_closed_page_error(exc):
            logger.info("scraper: page detached during evaluation, using fallback")
            return fallback
        raise


async def _navigate(page: Page, url: str) -> int | None:
    """Navigate with progressively weaker wait conditions.

    Returns:
        The response status code, or ``None`` when no response was recorded.

    Raises:
        NavigationError: If every strategy failed.
    """
    last_error: Exception | None = None
    for wait_until, timeout in NAVIGATION_STRATEGIES:
        try:
            response = await page.goto(url, wait_until=wait_until, timeout=timeout * 1000)
        except PlaywrightError as exc:
            logger.info("scraper: navigation with %s failed for %s: %s", wait_until, url, exc)
            last_error = exc
            continue
        status = response.status if response is not None else None
        if response is not None and not response.ok:
            logger.info("scraper: browser got non-OK status %s for %s", status, url)
        logger.debug("scraper: navigation with %s succeeded for %s", wait_until, url)
        return status
    raise NavigationError(f"All navigation strategies failed: {last_error}", url)


async def _wait_for_datadome(page: Page) -> None:
    """Wait for a DataDome challenge to clear; never raises."""
    try:
        on_challenge = await _safe_evaluate(page, _JS_DATADOME_CHALLENGE, False)
        if not on_challenge and not await _safe_evaluate(page, _JS_HAS_DATADOME, False):
            return
        logger.info("scraper: DataDome challenge detected on %s, waiting", page.url)
        waited = 0.0
        while waited < DATADOME_MAX_WAIT_SECONDS:
            await asyncio.sleep(DATADOME_POLL_INTERVAL_SECONDS)
            waited += DATADOME_POLL_INTERVAL_SECONDS
            if not await _safe_evaluate(page, _JS_DATADOME_CHALLENGE, False):
                logger.info("scraper: DataDome challenge cleared after %.0fs", waited)
                break
        else:
            logger.info("scraper: DataDome challenge still present, proceeding anyway")
        await asyncio.sleep(DATADOME_SETTLE_SECONDS)
    except Exception as exc:  # noqa: BLE001
        logger.info("scraper: error while handling DataDome challenge: %s", exc)


async def _load_listing_links(page: Page) -> None:
    """Bring lazily loaded links of a listing page into the DOM."""
    try:
        await page.wait_for_selector("a", timeout=5000)
    except PlaywrightError as exc:
        if _is_closed_page_error(exc):
            raise
        logger.debug("scraper: no anchors appeared within 5s on %s", page.url)

    if await _safe_evaluate(page, _JS_HAS_HTMX, False):
        logger.info("scraper: HTMX page, triggering up to %d elements", HTMX_MAX_TRIGGERS)
        await asyncio.sleep(HTMX_INITIAL_WAIT_SECONDS)
        triggered = await _safe_evaluate(page, _JS_TRIGGER_HTMX, 0, HTMX_MAX_TRIGGERS)
        if triggered:
            await asyncio.sleep(HTMX_SETTLE_SECONDS)

    link_count = await _safe_evaluate(page, _JS_COUNT_LINKS, 0)
    if link_count < SCROLL_LINK_THRESHOLD:
        logger.info("scraper: %d links on listing page, scrolling to load more", link_count)
        await _safe_evaluate(page, _JS_SCROLL_HALF, None)
        await asyncio.sleep(SCROLL_WAIT_SECONDS)


async def _page_html(page: Page) -> str:
    if page.is_closed():
        return _DETACHED_HTML
    try:
        return await page.content()
    except PlaywrightError as exc:
        if _is_closed_page_error(exc):
            return _DETACHED_HTML
        raise


# ---------------------------------------------------------------------------
# Public fetch function
# ---------------------------------------------------------------------------


async def fetch_url_browser(
    url: str,
    *,
    manager: BrowserManager,
    is_article: bool,
    timeout: float,
) -> FetchResult:
    """Fetch a URL using the headless browser owned by *manager*.

    Args:
        url: Target URL.
        manager: Shared :class:`BrowserManager`.
        is_article: ``True`` for article pages; ``False`` triggers the
            listing-page link loading steps.
        timeout: Default timeout in seconds for page operations.

    Returns:
        A :class:`~news_radar.scraper.http_fetcher.FetchResult` whose
        ``needs_browser`` is always ``False``.  Page-level failures are
        reported in ``error``.

    Raises:
        BrowserUnavailableError: If Chromium cannot be launched.
    """
    try:
        async with manager.page() as page:
            page.set_default_timeout(timeout * 1000)
            status = await _navigate(page, url)
            await _wait_for_datadome(page)
            if not is_article:
                try:
                    await asyncio.wait_for(
                        _load_listing_links(page),
                        timeout=LINK_EXTRACTION_TIMEOUT_SECONDS,
                    )
                except asyncio.TimeoutError:
                    logger.info("scraper: link loading timed out for %s", url)
            html = await _page_html(page)
            final_url = page.url if not page.is_closed() else url
    except NavigationError as exc:
        logger.warning("scraper: browser navigation failed for %s: %s", url, exc)
        return FetchResult(html=None, status_code=None, final_url=url, error=str(exc))
    except PlaywrightError as exc:
        # Also covers failures opening the context or page.
        logger.warning("scraper: browser fetch failed for %s: %s", url, exc)
        return FetchResult(
            html=None, status_code=None, final_url=url, error=f"browser error: {exc}"
        )

    logger.info("scraper: browser fetched %s (%d chars)", url, len(html))
    return FetchResult(
        html=html,
        status_code=status,
        final_url=final_url,
        error=None,
        needs_browser=False,
        protection=detect_protection(status, html),
    )
