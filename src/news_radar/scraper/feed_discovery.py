"""RSS/Atom feed autodiscovery for news sources.

Finds feeds for a source page in two ways:

- ``<link rel="alternate">`` tags with an RSS/Atom content type
  (:func:`feeds_from_html`).
- HEAD probes of well-known feed paths (``/rss``, ``/feed``, ``/atom.xml``,
  ...) when the page declares none.

Used by :mod:`news_radar.scraper.rss_fallback` when direct scraping of a
source page fails or yields no article links.
"""

from __future__ import annotations

import logging
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup, Tag

from news_radar.core.exceptions import FeedError
from news_radar.scraper.config import BROWSER_USER_AGENT

logger = logging.getLogger(__name__)

#: Well-known feed paths probed when the page declares no feed.
COMMON_FEED_PATHS: list[str] = [
    "/rss",
    "/rss.xml",
    "/feed",
    "/feed.xml",
    "/atom.xml",
    "/feeds/posts/default",
    "/index.xml",
    "/feed/",
    "/feeds/",
]

#: Content types that mark a response or ``<link>`` as a feed.
FEED_CONTENT_TYPES: set[str] = {
    "application/rss+xml",
    "application/atom+xml",
    "application/xml",
    "text/xml",
}

MAX_REDIRECTS: int = 5
REQUEST_TIMEOUT: float = 15.0

DiscoveredFeed = dict[str, str]


def feeds_from_html(html: str, page_url: str) -> list[DiscoveredFeed]:
    """Parse ``<link rel="alternate">`` feed declarations from *html*.

    Returns:
        Dicts with ``url``, ``title`` and ``feed_type`` (``"rss"`` or
        ``"atom"``), in document order.
    """
    feeds: list[DiscoveredFeed] = []
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup.find_all("link", rel="alternate"):
        if not isinstance(tag, Tag):
            continue
        content_type = tag.get("type")
        href = tag.get("href")
        if not content_type or not href:
            continue
        if not any(ct in content_type for ct in FEED_CONTENT_TYPES):
            continue
        absolute_url = urljoin(page_url, href)
        feeds.append(
            {
                "url": absolute_url,
                "title": tag.get("title") or _title_from_url(absolute_url),
                "feed_type": _feed_type(content_type, absolute_url),
            }
        )
    return feeds


async def discover_feeds(
    url: str,
    *,
    client: httpx.AsyncClient | None = None,
    html: str | None = None,
) -> list[DiscoveredFeed]:
    """Discover RSS/Atom feeds for a website URL.

    1. Fetch the page (skipped when *html* is supplied).
    2. Parse ``<link rel="alternate">`` feed declarations.
    3. If none are declared, probe :data:`COMMON_FEED_PATHS` with HEAD
       requests and keep those answering 200 with a feed content type.

    Args:
        url: Website URL; ``https://`` is assumed when the scheme is missing.
        client: Optional shared client; a short-lived one is created
            otherwise.
        html: Already fetched page HTML.

    Returns:
        Feeds deduplicated by URL; empty when none were found.

    Raises:
        FeedError: On timeout, HTTP error or connection failure while
            fetching the page.
    """
    parsed = urlparse(url)
    if not parsed.scheme:
        url = f"https://{url}"
        parsed = urlparse(url)
    base_url = f"{parsed.scheme}://{parsed.netloc}"

    if client is None:
        async with httpx.AsyncClient(
            timeout=REQUEST_TIMEOUT,
            follow_redirects=True,
            max_redirects=MAX_REDIRECTS,
        ) as owned_client:
            return await _discover(url, base_url, owned_client, html)
    return await _discover(url, base_url, client, html)


async def _discover(
    url: str,
    base_url: str,
    client: httpx.AsyncClient,
    html: str | None,
) -> list[DiscoveredFeed]:
    if html is None:
        try:
            response = await client.get(
                url,
                headers={"User-Agent": BROWSER_USER_AGENT},
                timeout=REQUEST_TIMEOUT,
                follow_redirects=True,
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FeedError(f"feed_discovery: timeout fetching {url}", url) from exc
        except httpx.HTTPStatusError as exc:
            raise FeedError(
                f"feed_discovery: HTTP {exc.response.status_code} from {url}", url
            ) from exc
        except httpx.RequestError as exc:
            raise FeedError(f"feed_discovery: connection error fetching {url}: {exc}", url) from exc
        html = response.text

    feeds = feeds_from_html(html, url)

    if not feeds:
        logger.debug("feed_discovery: no <link> tags on %s, probing common paths", url)
        feeds = await _probe_common_paths(base_url, client)

    seen_urls: set[str] = set()
    deduplicated: list[DiscoveredFeed] = []
    for feed in feeds:
        if feed["url"] not in seen_urls:
            seen_urls.add(feed["url"])
            deduplicated.append(feed)
    logger.info("feed_discovery: discovered %d feeds from %s", len(deduplicated), url)
    return deduplicated


async def probe_common_feed_paths(
    url: str,
    *,
    client: httpx.AsyncClient,
) -> list[DiscoveredFeed]:
    """Probe :data:`COMMON_FEED_PATHS` on the origin of *url* without fetching the page.

    Used when the page itself is blocked or unreachable.  Never raises.
    """
    parsed = urlparse(url)
    if not parsed.scheme:
        parsed = urlparse(f"https://{url}")
    feeds = await _probe_common_paths(f"{parsed.scheme}://{parsed.netloc}", client)
    logger.info("feed_discovery: %d feeds found by probing %s", len(feeds), parsed.netloc)
    return feeds


async def _probe_common_paths(base_url: str, client: httpx.AsyncClient) -> list[DiscoveredFeed]:
    feeds: list[DiscoveredFeed] = []
    for path in COMMON_FEED_PATHS:
        probe_url = urljoin(base_url, path)
        if await _probe_feed_url(client, probe_url):
            feeds.append(
                {
                    "url": probe_url,
                    "title": _title_from_url(probe_url),
                    "feed_type": "atom" if "atom" in path else "rss",
                }
            )
    return feeds


async def _probe_feed_url(client: httpx.AsyncClient, url: str) -> bool:
    """Return ``True`` if a HEAD request answers 200 with a feed content type."""
    try:
        response = await client.head(
            url,
            headers={"User-Agent": BROWSER_USER_AGENT},
            timeout=REQUEST_TIMEOUT,
            follow_redirects=True,
        )
    except httpx.RequestError:
        return False
    if response.status_code != 200:
        return False
    content_type = response.headers.get("content-type", "").lower()
    return any(ct in content_type for ct in FEED_CONTENT_TYPES)


def _title_from_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path.strip("/")
    if path:
        return path.split("/")[-1].replace("-", " ").replace("_", " ").title()
    return parsed.netloc


def _feed_type(content_type: str, url: str) -> str:
    if "atom" in content_type.lower() or "atom" in url.lower():
        return "atom"
    return "rss"
