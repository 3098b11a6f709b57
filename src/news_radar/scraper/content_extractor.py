"""Article text and metadata extraction from raw HTML.

Order of precedence for every field:

1. Source-specific CSS selectors (``scraping_config`` stored on the source).
2. ``trafilatura`` boilerplate removal and metadata extraction.
3. Generic BeautifulSoup heuristics (headline, author meta, article
   containers, paragraphs) and finally plain visible-text stripping.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import trafilatura
from bs4 import BeautifulSoup
from soupsieve import SelectorSyntaxError

from news_radar.scraper.config import MAX_CONTENT_BYTES

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")

_CONTENT_CONTAINERS: tuple[str, ...] = ("article", ".articleBody", "main", ".content")
_INVISIBLE_TAGS: tuple[str, ...] = ("script", "style", "noscript", "head", "template", "svg")

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class ScrapingConfig:
    """CSS selectors for a source whose article markup is known."""

    title_selector: str | None = None
    content_selector: str | None = None
    author_selector: str | None = None
    date_selector: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> ScrapingConfig | None:
        if not data:
            return None
        return cls(
            title_selector=data.get("title_selector") or None,
            content_selector=data.get("content_selector") or None,
            author_selector=data.get("author_selector") or None,
            date_selector=data.get("date_selector") or None,
        )


@dataclass
class ExtractedContent:
    """Result of extracting article content from an HTML page.

    Attributes:
        text: Cleaned article text, or ``None`` if extraction failed.
        title: Article headline, or ``None`` if not detected.
        author: Byline, or ``None``.
        published_at: Publication time (UTC when the page gave no zone).
        language: ISO 639-1 language code detected by trafilatura, or ``None``.
    """

    text: str | None
    title: str | None
    author: str | None = None
    published_at: datetime | None = None
    language: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _clean(text: str | None) -> str | None:
    if not text:
        return None
    cleaned = _WHITESPACE_RE.sub(" ", text).strip()
    return cleaned or None


def parse_date(value: str | None) -> datetime | None:
    """Parse ISO 8601 or RFC 2822 date strings; naive results become UTC."""
    if not value:
        return None
    value = value.strip()
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _select_text(soup: BeautifulSoup, selector: str | None) -> str | None:
    if not selector:
        return None
    try:
        element = soup.select_one(selector)
    except SelectorSyntaxError as exc:
        logger.debug("scraper: invalid selector %r: %s", selector, exc)
        return None
    if element is None:
        return None
    if element.name == "meta":
        return _clean(element.get("content"))
    return _clean(element.get_text(" "))


def _select_date(soup: BeautifulSoup, selector: str | None) -> datetime | None:
    if not selector:
        return None
    try:
        element = soup.select_one(selector)
    except SelectorSyntaxError:
        return None
    if element is None:
        return None
    raw = element.get("datetime") or element.get("content") or element.get_text(" ")
    return parse_date(raw)


def _fallback_title(soup: BeautifulSoup) -> str | None:
    h1 = soup.find("h1")
    if h1 is not None and _clean(h1.get_text(" ")):
        return _clean(h1.get_text(" "))
    og = soup.find("meta", attrs={"property": "og:title"})
    if og is not None and _clean(og.get("content")):
        return _clean(og.get("content"))
    if soup.title is not None and soup.title.string:
        return _clean(soup.title.string.split(" - ")[0])
    return None


def _fallback_author(soup: BeautifulSoup) -> str | None:
    meta = soup.find("meta", attrs={"name": "author"})
    if meta is not None and _clean(meta.get("content")):
        return _clean(meta.get("content"))
    return _select_text(soup, ".author")


def _fallback_text(soup: BeautifulSoup) -> str | None:
    for selector in _CONTENT_CONTAINERS:
        element = soup.select_one(selector)
        if element is not None:
            text = _clean(element.get_text(" "))
            if text and len(text) > 200:
                return text

    paragraphs = [
        cleaned
        for cleaned in (_clean(p.get_text(" ")) for p in soup.find_all("p"))
        if cleaned and len(cleaned) > 30
    ][:10]
    joined = "\n\n".join(paragraphs)
    if len(joined) > 100:
        return joined

    for tag in soup(_INVISIBLE_TAGS):
        tag.decompose()
    return _clean(soup.get_text(" "))


def _cap_text(text: str, url: str) -> str:
    # NUL bytes are rejected by PostgreSQL text columns.
    text = text.replace("\x00", "")
    encoded = text.encode("utf-8")
    if len(encoded) > MAX_CONTENT_BYTES:
        text = encoded[:MAX_CONTENT_BYTES].decode("utf-8", errors="ignore")
        logger.debug("scraper: truncated extracted text to %d bytes for %s", MAX_CONTENT_BYTES, url)
    return text


# ---------------------------------------------------------------------------
# Public extraction function
# ---------------------------------------------------------------------------


def extract_from_html(
    html: str,
    url: str,
    scraping_config: ScrapingConfig | Mapping[str, Any] | None = None,
) -> ExtractedContent:
    """Extract article text, title, author, date and language from raw HTML.

    Args:
        html: Raw HTML string (may be partial or malformed).
        url: Canonical URL of the page (used by trafilatura for heuristics).
        scraping_config: Optional source-specific CSS selectors, either a
            :class:`ScrapingConfig` or the JSON mapping stored on the source.

    Returns:
        An :class:`ExtractedContent` instance.  ``text`` may be ``None``
        if no readable content could be extracted.
    """
    if isinstance(scraping_config, Mapping) or scraping_config is None:
        scraping_config = ScrapingConfig.from_mapping(scraping_config)

    soup = BeautifulSoup(html or "", "html.parser")

    text: str | None = None
    title: str | None = None
    author: str | None = None
    published_at: datetime | None = None
    language: str | None = None

    # --- Source-specific selectors --------------------------------------
    if scraping_config is not None:
        title = _select_text(soup, scraping_config.title_selector)
        text = _select_text(soup, scraping_config.content_selector)
        author = _select_text(soup, scraping_config.author_selector)
        published_at = _select_date(soup, scraping_config.date_selector)

    # --- trafilatura ----------------------------------------------------
    try:
        if not text:
            text = trafilatura.extract(
                html,
                url=url,
                include_comments=False,
                include_tables=True,
                no_fallback=False,
                output_format="txt",
            ) or None

        meta = trafilatura.extract_metadata(html, default_url=url)
        if meta:
            title = title or _clean(getattr(meta, "title", None))
            author = author or _clean(getattr(meta, "author", None))
            published_at = published_at or parse_date(getattr(meta, "date", None))
            language = getattr(meta, "language", None) or None
    except Exception as exc:  # noqa: BLE001
        logger.warning("scraper: trafilatura extraction failed for %s: %s", url, exc)

    # --- Generic fallbacks ----------------------------------------------
    title = title or _fallback_title(soup)
    author = author or _fallback_author(soup)
    if not text:
        text = _fallback_text(soup)

    if text:
        text = _cap_text(text, url)

    return ExtractedContent(
        text=text or None,
        title=title,
        author=author,
        published_at=published_at,
        language=language,
    )
