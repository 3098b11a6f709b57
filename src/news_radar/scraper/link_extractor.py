"""Article link extraction from source listing pages.

Anchors with a meaningful amount of text are treated as candidate article
links (navigation links are usually one or two words).  HTMX ``hx-get``
targets are included because some listing pages load their articles that
way.  Candidates are resolved to absolute URLs, filtered and deduplicated.
"""

from __future__ import annotations

import logging
import urllib.parse
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

from news_radar.scraper.config import NON_ARTICLE_EXTENSIONS, NON_ARTICLE_PATH_MARKERS

logger = logging.getLogger(__name__)

_SKIPPED_SCHEMES: tuple[str, ...] = ("javascript:", "mailto:", "tel:", "data:")
_HTMX_LINK_ATTRS: tuple[str, ...] = ("hx-get", "data-hx-get")


@dataclass
class LinkExtractionOptions:
    """Filters applied by :func:`extract_article_links`.

    Attributes:
        include_patterns: Keep only URLs containing one of these substrings.
        exclude_patterns: Drop URLs containing any of these substrings.
        max_links: Maximum number of links returned.
        minimum_text_length: Minimum anchor text length for ``<a>`` links.
        same_domain_only: Drop links pointing at other hosts.
    """

    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    max_links: int = 50
    minimum_text_length: int = 20
    same_domain_only: bool = False


def normalize_urls(links: Iterable[str], base_url: str) -> list[str]:
    """Resolve relative links against *base_url*.

    Absolute ``http(s)`` URLs are kept as they are, apart from decoding
    ``&amp;`` entities left over from raw HTML.
    """
    normalized: list[str] = []
    for link in links:
        link = link.strip().replace("&amp;", "&")
        if link.startswith(("http://", "https://")):
            normalized.append(link)
        else:
            normalized.append(urllib.parse.urljoin(base_url, link))
    return normalized


def filter_links_by_patterns(
    links: Sequence[str],
    include_patterns: Sequence[str] | None = None,
    exclude_patterns: Sequence[str] | None = None,
) -> list[str]:
    """Apply include substring filters, then exclude substring filters."""
    filtered = list(links)
    if include_patterns:
        filtered = [link for link in filtered if any(p in link for p in include_patterns)]
        logger.debug("scraper: %d links left after include patterns", len(filtered))
    if exclude_patterns:
        filtered = [link for link in filtered if not any(p in link for p in exclude_patterns)]
        logger.debug("scraper: %d links left after exclude patterns", len(filtered))
    return filtered


def _is_candidate_href(href: str) -> bool:
    href = href.strip()
    if not href or href.startswith("#"):
        return False
    return not href.lower().startswith(_SKIPPED_SCHEMES)


def _looks_like_article(url: str, base_url: str) -> bool:
    parsed = urllib.parse.urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False
    path = parsed.path.lower()
    if path in ("", "/"):
        return False
    # Same page as the listing itself.
    if url.rstrip("/") == base_url.rstrip("/"):
        return False
    if path.endswith(NON_ARTICLE_EXTENSIONS):
        return False
    return not any(marker in path for marker in NON_ARTICLE_PATH_MARKERS)


def _same_host(url: str, base_url: str) -> bool:
    def host(u: str) -> str:
        netloc = urllib.parse.urlparse(u).netloc.lower()
        return netloc[4:] if netloc.startswith("www.") else netloc

    return host(url) == host(base_url)


def extract_article_links(
    html: str,
    base_url: str,
    options: LinkExtractionOptions | None = None,
) -> list[str]:
    """Return candidate article URLs found on a listing page.

    Args:
        html: Listing page HTML (plain HTTP or browser-rendered).
        base_url: URL the HTML was fetched from; used to resolve relative
            links.
        options: Filters and limits; defaults to :class:`LinkExtractionOptions`.

    Returns:
        Absolute, deduplicated URLs in document order, at most
        ``options.max_links`` of them.
    """
    options = options or LinkExtractionOptions()
    soup = BeautifulSoup(html or "", "html.parser")

    raw: list[str] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor.get("href") or ""
        text = anchor.get_text(" ", strip=True)
        if _is_candidate_href(href) and len(text) >= options.minimum_text_length:
            raw.append(href.split("#", 1)[0])
    for attr in _HTMX_LINK_ATTRS:
        for element in soup.find_all(attrs={attr: True}):
            target = element.get(attr) or ""
            if _is_candidate_href(target):
                raw.append(target.split("#", 1)[0])

    if not raw:
        logger.info("scraper: no candidate links on %s", base_url)
        return []

    links = [
        link for link in normalize_urls(raw, base_url) if _looks_like_article(link, base_url)
    ]
    if options.same_domain_only:
        links = [link for link in links if _same_host(link, base_url)]
    links = filter_links_by_patterns(links, options.include_patterns, options.exclude_patterns)

    unique = list(dict.fromkeys(links))
    if len(unique) > options.max_links:
        unique = unique[: options.max_links]
    logger.info("scraper: extracted %d article links from %s", len(unique), base_url)
    return unique
