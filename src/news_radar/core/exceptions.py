"""Application-wide exception hierarchy for News Radar.

All custom exceptions subclass ``NewsRadarError``, enabling consistent error
handling and structured logging across the scraper and its workers.

Hierarchy::

    NewsRadarError
    ├── FetchError                 (url)
    │   ├── BrowserUnavailableError
    │   └── NavigationError
    ├── NoArticleLinksError        (source_url)
    ├── FeedError                  (feed_url)
    ├── SourceNotFoundError        (source_id)
    └── ScrapeJobRunningError      (user_id)
"""

from __future__ import annotations


class NewsRadarError(Exception):
    """Base class for all News Radar exceptions."""


# ---------------------------------------------------------------------------
# Fetch exceptions
# ---------------------------------------------------------------------------


class FetchError(NewsRadarError):
    """Raised when a page could not be retrieved by any fetch method.

    Args:
        message: Human-readable description of the failure.
        url: The URL that could not be fetched.
    """

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class BrowserUnavailableError(FetchError):
    """Raised when Playwright is not installed or Chromium cannot be launched."""


class NavigationError(FetchError):
    """Raised when every browser navigation strategy failed for a URL."""


# ---------------------------------------------------------------------------
# Source / feed exceptions
# ---------------------------------------------------------------------------


class NoArticleLinksError(NewsRadarError):
    """Raised when a source page (and its feeds) yielded no article links.

    Args:
        source_url: URL of the source listing page.
    """

    def __init__(self, source_url: str) -> None:
        super().__init__(f"No article links found for {source_url}")
        self.source_url = source_url


class FeedError(NewsRadarError):
    """Raised when an RSS/Atom feed cannot be fetched or parsed.

    Args:
        message: Description of the failure.
        feed_url: URL of the feed.
    """

    def __init__(self, message: str, feed_url: str | None = None) -> None:
        super().__init__(message)
        self.feed_url = feed_url


class SourceNotFoundError(NewsRadarError):
    """Raised when a scrape is requested for a source ID that does not exist."""

    def __init__(self, source_id: str) -> None:
        super().__init__(f"Source with ID {source_id} not found")
        self.source_id = source_id


class ScrapeJobRunningError(NewsRadarError):
    """Raised when a global scrape job is already running for a tenant."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"A global scraping job is already running for user {user_id}")
        self.user_id = user_id
