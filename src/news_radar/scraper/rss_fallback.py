"""RSS/Atom fallback for sources that cannot be scraped directly.

When a source page is blocked, rendered entirely client-side, or yields no
article links, the pipeline asks :func:`try_alternative_scraping` for feed
entries instead.  Candidate feeds come, in order, from:

1. :data:`ALTERNATIVE_SOURCES`, hand-maintained feeds for domains known to
   block scrapers;
2. ``<link rel="alternate">`` declarations in HTML we already have;
3. :func:`~news_radar.scraper.feed_discovery.discover_feeds` path probing.

Feeds are fetched with ``httpx`` and parsed with ``feedparser``.
"""

from __future__ import annotations

import calendar
import logging
import re
import urllib.parse
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import feedparser
import httpx

from news_radar.core.exceptions import FeedError
from news_radar.scraper.config import FEED_HEADERS
from news_radar.scraper.feed_discovery import (
    discover_feeds,
    feeds_from_html,
    probe_common_feed_paths,
)

logger = logging.getLogger(__name__)

_HTML_TAG_RE = re.compile(r"<[^>]+>")

FEED_TIMEOUT_SECONDS: float = 30.0

#: Conditional-GET validators per feed URL: ``{"etag": ..., "last_modified": ...}``.
FeedCache = dict[str, dict[str, str]]


@dataclass(frozen=True)
class AlternativeSource:
    """A feed known to carry a protected site's articles."""

    name: str
    rss_url: str
    fallback_url: str | None = None


#: Known feeds per registrable domain, tried in order.
ALTERNATIVE_SOURCES: dict[str, list[AlternativeSource]] = {
    "marketwatch.com": [
        AlternativeSource(
            name="MarketWatch RSS",
            rss_url="https://feeds.marketwatch.com/marketwatch/topstories/",
            fallback_url="https://www.marketwatch.com/rss",
        ),
        AlternativeSource(
            name="MarketWatch Breaking News RSS",
            rss_url="https://feeds.marketwatch.com/marketwatch/breakingnews/",
        ),
        AlternativeSource(
            name="MarketWatch Real Time Headlines RSS",
            rss_url="https://feeds.marketwatch.com/marketwatch/realtimeheadlines/",
        ),
    ],
}


@dataclass
class FeedEntry:
    """One usable feed item."""

    title: str
    link: str
    summary: str | None = None
    author: str | None = None
    published_at: datetime | None = None


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _strip_html(text: str) -> str:
    cleaned = _HTML_TAG_RE.sub(" ", text)
    return re.sub(r"\s+", " ", cleaned).strip()


def _entry_datetime(entry: Any) -> datetime | None:
    pub_struct = getattr(entry, "published_parsed", None) or getattr(entry, "updated_parsed", None)
    if pub_struct is None:
        return None
    try:
        return datetime.fromtimestamp(calendar.timegm(pub_struct), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _to_feed_entry(entry: Any) -> FeedEntry | None:
    title = _strip_html(getattr(entry, "title", "") or "")
    link = (getattr(entry, "link", "") or "").strip()
    if not title or not link:
        return None
    raw_summary = getattr(entry, "summary", None) or getattr(entry, "description", None)
    summary = _strip_html(raw_summary) if raw_summary else None
    return FeedEntry(
        title=title,
        link=link,
        summary=summary or None,
        author=(getattr(entry, "author", None) or None),
        published_at=_entry_datetime(entry),
    )


def _domain_key(url: str) -> str:
    netloc = urllib.parse.urlparse(url).netloc.lower().split(":")[0]
    parts = netloc.split(".")
    return ".".join(parts[-2:]) if len(parts) >= 2 else netloc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def fetch_feed(
    url: str,
    *,
    client: httpx.AsyncClient,
    feed_cache: FeedCache | None = None,
) -> list[FeedEntry]:
    """Fetch and parse one RSS/Atom feed.

    Uses conditional GET when *feed_cache* holds an ETag or Last-Modified
    value for the URL, and records the new validators after a 200.

    Returns:
        Usable entries; ``[]`` on 304 Not Modified.

    Raises:
        FeedError: On request errors, HTTP errors, or an unparseable feed.
    """
    headers = dict(FEED_HEADERS)
    cached = (feed_cache or {}).get(url, {})
    if cached.get("etag"):
        headers["If-None-Match"] = cached["etag"]
    if cached.get("last_modified"):
        headers["If-Modified-Since"] = cached["last_modified"]

    try:
        response = await client.get(
            url, headers=headers, timeout=FEED_TIMEOUT_SECONDS, follow_redirects=True
        )
    except httpx.RequestError as exc:
        raise FeedError(f"rss: request error fetching {url}: {exc}", url) from exc

    if response.status_code == 304:
        logger.debug("rss: %s not modified", url)
        return []
    if response.status_code >= 400:
        raise FeedError(f"rss: HTTP {response.status_code} from {url}", url)

    if feed_cache is not None:
        validators: dict[str, str] = {}
        if response.headers.get("etag"):
            validators["etag"] = response.headers["etag"]
        if response.headers.get("last-modified"):
            validators["last_modified"] = response.headers["last-modified"]
        if validators:
            feed_cache[url] = validators

    parsed = feedparser.parse(response.content)
    if parsed.bozo and not parsed.entries:
        raise FeedError(f"rss: could not parse feed {url}: {parsed.bozo_exception}", url)

    entries = [e for e in (_to_feed_entry(raw) for raw in parsed.entries) if e is not None]
    logger.info("rss: %d entries from %s", len(entries), url)
    return entries


async def find_feeds_for(
    url: str,
    *,
    client: httpx.AsyncClient,
    html: str | None = None,
) -> list[str]:
    """Return candidate feed URLs for a source page, best first."""
    candidates: list[str] = []
    for source in ALTERNATIVE_SOURCES.get(_domain_key(url), []):
        candidates.append(source.rss_url)
        if source.fallback_url:
            candidates.append(source.fallback_url)

    if html:
        candidates.extend(feed["url"] for feed in feeds_from_html(html, url))

    if not candidates:
        try:
            discovered = await discover_feeds(url, client=client, html=html)
        except FeedError as exc:
            logger.info("rss: page unavailable for feed discovery on %s: %s", url, exc)
            discovered = await probe_common_feed_paths(url, client=client)
        candidates.extend(feed["url"] for feed in discovered)

    return list(dict.fromkeys(candidates))


async def try_alternative_scraping(
    url: str,
    *,
    client: httpx.AsyncClient,
    html: str | None = None,
    feed_cache: FeedCache | None = None,
) -> list[FeedEntry]:
    """Return entries from the first candidate feed that yields any.

    Never raises for feed failures; returns ``[]`` when every feed failed or
    no feed was found.
    """
    logger.info("rss: attempting alternative scraping for %s", url)
    for feed_url in await find_feeds_for(url, client=client, html=html):
        try:
            entries = await fetch_feed(feed_url, client=client, feed_cache=feed_cache)
        except FeedError as exc:
            logger.info("rss: feed %s failed: %s", feed_url, exc)
            continue
        if entries:
            logger.info("rss: using %d entries from %s for %s", len(entries), feed_url, url)
            return entries
    logger.info("rss: no usable feed for %s", url)
    return []
