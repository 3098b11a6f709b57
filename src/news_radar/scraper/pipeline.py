"""Source scraping jobs: fetch a listing page, follow its articles, store matches.

``scrape_source``
    Scrapes one source: collects article links (directly or from feeds),
    fetches each article with bounded concurrency, matches it against the
    tenant's keywords and stores new matches.

``run_global_scrape_job``
    Scrapes every auto-scrape source of one tenant in sequence and emails a
    digest of new articles per source.

Stop flags and the per-tenant "job running" guard live in process memory,
so they only affect jobs running in the same worker process.

Database access goes through :class:`~news_radar.core.storage.NewsRadarStorage`
with short synchronous sessions, as in the Celery tasks that drive this
module.
"""

from __future__ import annotations

import asyncio
import logging
import random
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from news_radar.config.settings import Settings, get_settings
from news_radar.core.email_service import EmailService, get_email_service
from news_radar.core.exceptions import (
    FetchError,
    NoArticleLinksError,
    ScrapeJobRunningError,
    SourceNotFoundError,
)
from news_radar.core.models import Article, Source
from news_radar.core.storage import NewsRadarStorage
from news_radar.scraper.content_extractor import extract_from_html
from news_radar.scraper.http_fetcher import RobotsCache
from news_radar.scraper.keywords import match_article
from news_radar.scraper.link_extractor import LinkExtractionOptions, extract_article_links
from news_radar.scraper.method_selector import FetchOptions, get_content
from news_radar.scraper.playwright_fetcher import BrowserManager
from news_radar.scraper.rss_fallback import FeedEntry, try_alternative_scraping

logger = logging.getLogger(__name__)

#: Characters of article text used as the stored summary.
_SUMMARY_CHARS = 300

# Process-local job state.
_active_sources: dict[str, bool] = {}
_running_jobs: dict[str, object] = {}
_job_sources: dict[str, list[str]] = {}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class ScrapeResult:
    """Outcome of :func:`scrape_source`.

    Attributes:
        processed_count: Articles that were fetched (or attempted).
        saved_count: Articles stored for the tenant.
        new_articles: The stored articles, in link order.
        error_count: Articles that failed with an error.
    """

    processed_count: int = 0
    saved_count: int = 0
    new_articles: list[Article] = field(default_factory=list)
    error_count: int = 0


@dataclass
class _ArticleTarget:
    url: str
    feed_entry: FeedEntry | None = None


@dataclass
class _JobContext:
    client: httpx.AsyncClient
    browser: BrowserManager | None
    options: FetchOptions
    settings: Settings
    robots_cache: RobotsCache = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Stop flags
# ---------------------------------------------------------------------------


def stop_scraping_source(source_id: str) -> None:
    """Ask a running scrape of *source_id* to stop before its next article."""
    if source_id not in _active_sources:
        return
    _active_sources[source_id] = False
    logger.info("scraper: stopping scrape for source %s", source_id)


def is_source_active(source_id: str) -> bool:
    """Return ``True`` while a scrape of *source_id* runs and was not stopped."""
    return _active_sources.get(source_id, False)


def is_global_job_running(user_id: str) -> bool:
    return user_id in _running_jobs


def _claim_global_job(user_id: str) -> object:
    if user_id in _running_jobs:
        raise ScrapeJobRunningError(user_id)
    token = object()
    _running_jobs[user_id] = token
    return token


def _release_global_job(user_id: str, token: object) -> None:
    # A stopped job must not clear the entry of a job started after it.
    if _running_jobs.get(user_id) is token:
        del _running_jobs[user_id]
        _job_sources.pop(user_id, None)


def stop_global_scrape_job(user_id: str) -> dict[str, Any]:
    """Stop the tenant's global job and every source it is scraping."""
    if user_id not in _running_jobs:
        return {"success": False, "message": "No global scraping job is currently running"}
    for source_id in _job_sources.get(user_id, []):
        stop_scraping_source(source_id)
    _running_jobs.pop(user_id, None)
    _job_sources.pop(user_id, None)
    logger.info("scraper: global scrape job stopped for user %s", user_id)
    return {"success": True, "message": "Global scrape job stopped successfully"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _summarize(text: str | None) -> str | None:
    if not text:
        return None
    text = " ".join(text.split())
    if len(text) <= _SUMMARY_CHARS:
        return text
    cut = text[:_SUMMARY_CHARS].rsplit(" ", 1)[0]
    return f"{cut}..."


def _link_options(source: Source, settings: Settings) -> LinkExtractionOptions:
    config = source.scraping_config or {}
    return LinkExtractionOptions(
        include_patterns=list(config.get("include_patterns") or []),
        exclude_patterns=list(config.get("exclude_patterns") or []),
        max_links=settings.max_articles_per_source,
    )


async def _open_job_context(
    stack: AsyncExitStack,
    settings: Settings,
    client: httpx.AsyncClient | None,
    browser: BrowserManager | None,
) -> _JobContext:
    """Build the shared client/browser for a job; owned ones close with *stack*."""
    if client is None:
        client = await stack.enter_async_context(
            httpx.AsyncClient(follow_redirects=True, timeout=settings.http_timeout_seconds)
        )
    if browser is None and settings.use_browser_fallback:
        browser = BrowserManager(
            headless=settings.browser_headless,
            executable_path=settings.browser_executable_path,
        )
        stack.push_async_callback(browser.close)
    return _JobContext(
        client=client,
        browser=browser,
        options=FetchOptions.from_settings(settings),
        settings=settings,
    )


async def _collect_targets(source: Source, ctx: _JobContext) -> list[_ArticleTarget]:
    """Return the article URLs to visit for *source*.

    Raises:
        FetchError: If the source page could not be fetched and no feed
            fallback is available.
        NoArticleLinksError: If neither the page nor its feeds yield links.
    """
    html: str | None = None
    fetch_error: FetchError | None = None
    targets: list[_ArticleTarget] = []

    try:
        page = await get_content(
            source.url,
            is_article=False,
            client=ctx.client,
            browser=ctx.browser,
            options=ctx.options,
            robots_cache=ctx.robots_cache,
        )
    except FetchError as exc:
        logger.warning("scraper: could not fetch source page %s: %s", source.url, exc)
        fetch_error = exc
    else:
        html = page.html
        links = extract_article_links(page.html, page.final_url, _link_options(source, ctx.settings))
        targets = [_ArticleTarget(url=link) for link in links]
        logger.info("scraper: %d article links on %s via %s", len(targets), source.url, page.method)

    if not targets and ctx.settings.use_rss_fallback:
        entries = await try_alternative_scraping(source.url, client=ctx.client, html=html)
        targets = [_ArticleTarget(url=entry.link, feed_entry=entry) for entry in entries]

    if not targets:
        if fetch_error is not None:
            raise fetch_error
        raise NoArticleLinksError(source.url)
    return targets[: ctx.settings.max_articles_per_source]


async def _process_article(
    target: _ArticleTarget,
    *,
    source: Source,
    keywords: list[str],
    storage: NewsRadarStorage,
    ctx: _JobContext,
    semaphore: asyncio.Semaphore,
    result: ScrapeResult,
) -> Article | None:
    """Fetch, match and store one article; errors are logged and counted."""
    async with semaphore:
        if not is_source_active(source.id):
            return None
        await asyncio.sleep(random.uniform(ctx.settings.delay_min, ctx.settings.delay_max))
        if not is_source_active(source.id):
            return None

        result.processed_count += 1
        url = target.url
        try:
            if storage.get_article_by_url(url, source.user_id) is not None:
                logger.info("scraper: %s already stored, skipping", url)
                return None

            title: str | None
            content: str | None
            author: str | None = None
            published_at: datetime | None = None
            try:
                page = await get_content(
                    url,
                    is_article=True,
                    client=ctx.client,
                    browser=ctx.browser,
                    options=ctx.options,
                    robots_cache=ctx.robots_cache,
                )
            except FetchError:
                if target.feed_entry is None:
                    raise
                logger.info("scraper: using feed summary for %s", url)
                entry = target.feed_entry
                title, content = entry.title, entry.summary
                author, published_at = entry.author, entry.published_at
            else:
                extracted = extract_from_html(page.html, page.final_url, source.scraping_config)
                feed_entry = target.feed_entry
                title = extracted.title or (feed_entry.title if feed_entry else None)
                content = extracted.text or (feed_entry.summary if feed_entry else None)
                author = extracted.author or (feed_entry.author if feed_entry else None)
                published_at = extracted.published_at or (
                    feed_entry.published_at if feed_entry else None
                )

            if not title or not content:
                logger.info("scraper: no title or content extracted from %s", url)
                return None

            matched = match_article(title, content, keywords)
            if not matched:
                logger.debug("scraper: no keywords matched in %s", url)
                return None

            summary = target.feed_entry.summary if target.feed_entry else None
            article = storage.create_article(
                user_id=source.user_id,
                source_id=source.id,
                url=url,
                title=title,
                content=content,
                author=author,
                publish_date=published_at or datetime.now(tz=timezone.utc),
                summary=summary or _summarize(content),
                detected_keywords=matched,
            )
            if article is not None:
                logger.info("scraper: saved %s with keywords %s", url, matched)
            return article
        except Exception as exc:  # noqa: BLE001
            result.error_count += 1
            logger.warning("scraper: error processing article %s: %s", url, exc)
            return None


# ---------------------------------------------------------------------------
# Public jobs
# ---------------------------------------------------------------------------


async def scrape_source(
    source_id: str,
    *,
    storage: NewsRadarStorage | None = None,
    client: httpx.AsyncClient | None = None,
    browser: BrowserManager | None = None,
    settings: Settings | None = None,
) -> ScrapeResult:
    """Scrape one source and store the articles that match tenant keywords.

    Args:
        source_id: ID of the source to scrape.
        storage: Repository; defaults to one over the configured database.
        client: Shared HTTP client; a job-scoped one is created otherwise.
        browser: Shared browser; a job-scoped one is created when browser
            fallback is enabled.
        settings: Settings; defaults to :func:`get_settings`.

    Returns:
        A :class:`ScrapeResult`.

    Raises:
        SourceNotFoundError: If the source does not exist.
        NoArticleLinksError: If no article links (or feed entries) were found.
        FetchError: If the source page failed and feeds were unavailable.
    """
    settings = settings or get_settings()
    storage = storage or NewsRadarStorage()

    source = storage.get_source(source_id)
    if source is None:
        raise SourceNotFoundError(source_id)

    _active_sources[source_id] = True
    logger.info("scraper: starting scrape of source %s (%s)", source.name, source.url)
    try:
        async with AsyncExitStack() as stack:
            ctx = await _open_job_context(stack, settings, client, browser)
            targets = await _collect_targets(source, ctx)

            keywords = storage.get_active_keywords(source.user_id)
            result = ScrapeResult()
            if not keywords:
                logger.info("scraper: user %s has no active keywords, skipping articles", source.user_id)
            else:
                semaphore = asyncio.Semaphore(settings.article_concurrency)
                articles = await asyncio.gather(
                    *(
                        _process_article(
                            target,
                            source=source,
                            keywords=keywords,
                            storage=storage,
                            ctx=ctx,
                            semaphore=semaphore,
                            result=result,
                        )
                        for target in targets
                    )
                )
                result.new_articles = [a for a in articles if a is not None]
                result.saved_count = len(result.new_articles)

        storage.update_source(source_id, last_scraped=datetime.now(tz=timezone.utc))
        logger.info(
            "scraper: finished source %s: processed=%d saved=%d errors=%d",
            source.name,
            result.processed_count,
            result.saved_count,
            result.error_count,
        )
        return result
    finally:
        _active_sources.pop(source_id, None)


async def _notify_new_articles(
    user_id: str,
    source_name: str,
    articles: list[Article],
    storage: NewsRadarStorage,
    email_service: EmailService,
) -> bool:
    email = storage.get_user_email(user_id)
    if not email:
        logger.info("scraper: no email address for user %s, skipping notification", user_id)
        return False
    return await email_service.send_new_articles(email, source_name, articles)


async def run_global_scrape_job(
    user_id: str,
    *,
    storage: NewsRadarStorage | None = None,
    email_service: EmailService | None = None,
    settings: Settings | None = None,
    client: httpx.AsyncClient | None = None,
    browser: BrowserManager | None = None,
) -> dict[str, Any]:
    """Scrape every auto-scrape source of *user_id* one after another.

    Only one global job per tenant runs at a time in a process.  A failing
    source is recorded in ``results`` and does not stop the job.

    Returns:
        ``{"success": bool, "message": str, "results": [...]}`` where each
        result holds ``source_id``, ``source_name``, ``processed``, ``saved``
        and, for failed sources, ``error``.
    """
    try:
        token = _claim_global_job(user_id)
    except ScrapeJobRunningError as exc:
        logger.info("scraper: %s", exc)
        return {"success": False, "message": str(exc)}

    settings = settings or get_settings()
    storage = storage or NewsRadarStorage()
    email_service = email_service or get_email_service()

    try:
        sources = storage.get_auto_scrape_sources(user_id)
        logger.info("scraper: global job for user %s with %d sources", user_id, len(sources))
        if not sources:
            return {
                "success": True,
                "message": "No sources found for auto-scraping",
                "results": [],
            }

        _job_sources[user_id] = [source.id for source in sources]
        results: list[dict[str, Any]] = []
        total_new = 0

        async with AsyncExitStack() as stack:
            ctx = await _open_job_context(stack, settings, client, browser)
            for source in sources:
                if _running_jobs.get(user_id) is not token:
                    logger.info("scraper: global job for user %s was stopped", user_id)
                    break
                try:
                    outcome = await scrape_source(
                        source.id,
                        storage=storage,
                        client=ctx.client,
                        browser=ctx.browser,
                        settings=settings,
                    )
                except Exception as exc:  # noqa: BLE001
                    logger.warning("scraper: error scraping source %s: %s", source.name, exc)
                    results.append(
                        {
                            "source_id": source.id,
                            "source_name": source.name,
                            "processed": 0,
                            "saved": 0,
                            "error": str(exc),
                        }
                    )
                    continue

                results.append(
                    {
                        "source_id": source.id,
                        "source_name": source.name,
                        "processed": outcome.processed_count,
                        "saved": outcome.saved_count,
                    }
                )
                if outcome.new_articles:
                    total_new += len(outcome.new_articles)
                    await _notify_new_articles(
                        user_id, source.name, outcome.new_articles, storage, email_service
                    )

        logger.info(
            "scraper: global job for user %s completed, %d new articles", user_id, total_new
        )
        return {
            "success": True,
            "message": f"Global scrape job completed. Processed {len(results)} sources.",
            "results": results,
        }
    except Exception as exc:  # noqa: BLE001
        logger.error("scraper: fatal error in global job for user %s: %s", user_id, exc)
        return {"success": False, "message": str(exc)}
    finally:
        _release_global_job(user_id, token)
