"""Heuristics deciding when a plain HTTP response needs a real browser.

Two entry points:

- :func:`requires_browser` runs on every HTTP response and catches pages whose
  content is clearly produced client-side (hydration shells, lazy loading,
  HTMX, too few links on a small page).
- :func:`detect_dynamic_content_needs` runs only on listing pages that
  already looked usable, and escalates when links are probably missing.
"""

from __future__ import annotations

import logging
import re

from news_radar.scraper.config import MIN_LISTING_LINKS, SUBSTANTIAL_HTML_LENGTH
from news_radar.scraper.protection import detect_protection

logger = logging.getLogger(__name__)

_ANCHOR_RE = re.compile(r"<a[^>]+href", re.IGNORECASE)

_CONTENT_MARKUP: tuple[str, ...] = (
    "<article",
    "<main",
    'class="content',
    'class="post',
    "<p>",
)

_HYDRATION_MARKERS: tuple[str, ...] = (
    'id="__next"',
    "data-reactroot",
    "window.__INITIAL_STATE__",
    "window.__PRELOADED_STATE__",
    "/_next/",
    "/chunks/",
    "/bundles/",
)

_LAZY_LOAD_MARKERS: tuple[str, ...] = (
    "lazy-load",
    "lazyload",
    'loading="lazy"',
    "data-src",
    "infinite-scroll",
    "ng-lazy",
    "v-lazy",
    "IntersectionObserver",
)

_HTMX_MARKERS: tuple[str, ...] = (
    "htmx.min.js",
    "htmx.js",
    "hx-get",
    "hx-post",
    "hx-trigger",
    "hx-target",
    "hx-swap",
)

_STRONG_HTMX_MARKERS: tuple[str, ...] = (
    "hx-get=",
    "hx-post=",
    "hx-trigger=",
    "data-hx-get=",
    "data-hx-post=",
    "htmx.min.js",
    "htmx.js",
    "unpkg.com/htmx",
)

_DYNAMIC_LOADING_MARKERS: tuple[str, ...] = (
    "load-more",
    "lazy-load",
    "infinite-scroll",
    "ajax-load",
    "data-react-root",
    "ng-app=",
    "v-app",
    "@click=",
)

_LOADING_STATE_MARKERS: tuple[str, ...] = (
    "content-skeleton",
    "article-skeleton",
    "loading-spinner",
    "posts-loading",
    "articles-loading",
    "content-placeholder",
)

_CONTAINER_MARKERS: tuple[str, ...] = ("articles-container", "posts-container", "content-container")
_LOADING_WORDS: tuple[str, ...] = ("loading", "spinner", "skeleton")
_SPA_MARKERS: tuple[str, ...] = ("react-root", "ng-app", "vue-app", "__next", "nuxt")


def count_anchor_links(html: str) -> int:
    """Count ``<a ... href`` occurrences in raw HTML."""
    return len(_ANCHOR_RE.findall(html))


def _contains_any(haystack: str, needles: tuple[str, ...]) -> bool:
    return any(needle in haystack for needle in needles)


def requires_browser(html: str) -> bool:
    """Return ``True`` if an HTTP response should be re-fetched in a browser.

    Large pages with article or paragraph markup never need a browser.  Bot
    protection and client-side hydration always do.  Lazy loading, HTMX and a
    low link count only count on small pages.
    """
    lowered = html.lower()
    if len(html) > SUBSTANTIAL_HTML_LENGTH and _contains_any(lowered, _CONTENT_MARKUP):
        return False

    protection = detect_protection(None, html)
    if protection.detected:
        logger.info("scraper: bot protection (%s) requires browser", protection.type.value)
        return True

    if _contains_any(html, _HYDRATION_MARKERS):
        logger.info("scraper: client-side application detected, requires browser")
        return True

    if len(html) < SUBSTANTIAL_HTML_LENGTH:
        if _contains_any(html, _LAZY_LOAD_MARKERS):
            logger.info("scraper: lazy loading on small page (%d chars)", len(html))
            return True
        if _contains_any(html, _HTMX_MARKERS):
            logger.info("scraper: HTMX on small page (%d chars)", len(html))
            return True
        link_count = count_anchor_links(html)
        if link_count < MIN_LISTING_LINKS:
            logger.info("scraper: only %d links on small page", link_count)
            return True

    return False


def detect_dynamic_content_needs(html: str) -> bool:
    """Return ``True`` if a listing page probably loads its links dynamically.

    Escalates on any strong signal (HTMX attributes or script, fewer than
    five links, empty article containers with loading markers) or on a
    combination of weaker ones (SPA framework plus missing content, dynamic
    loading plus loading placeholders).
    """
    lowered = html.lower()

    has_strong_htmx = _contains_any(lowered, _STRONG_HTMX_MARKERS)
    has_dynamic_loading = _contains_any(lowered, _DYNAMIC_LOADING_MARKERS)
    has_loading_state = _contains_any(lowered, _LOADING_STATE_MARKERS)
    link_count = count_anchor_links(html)
    has_few_links = link_count < MIN_LISTING_LINKS
    has_empty_containers = _contains_any(lowered, _CONTAINER_MARKERS) and _contains_any(
        lowered, _LOADING_WORDS
    )
    has_spa = _contains_any(lowered, _SPA_MARKERS)

    needs_dynamic = (
        has_strong_htmx
        or has_few_links
        or has_empty_containers
        or (has_spa and (has_few_links or has_loading_state))
        or (has_dynamic_loading and has_loading_state)
    )
    if needs_dynamic:
        logger.info(
            "scraper: dynamic content detected htmx=%s spa=%s links=%d "
            "dynamic_loading=%s loading_state=%s empty_containers=%s",
            has_strong_htmx,
            has_spa,
            link_count,
            has_dynamic_loading,
            has_loading_state,
            has_empty_containers,
        )
    return needs_dynamic
