"""Celery tasks for the News Radar scraper.

``scrape_source_task``
    Scrapes a single source on demand.

``run_global_scrape_task``
    Scrapes every auto-scrape source of one tenant and emails new articles.

``dispatch_scheduled_scrapes``
    Beat target: enqueues ``run_global_scrape_task`` for every tenant whose
    auto-scrape interval has elapsed and stamps their ``last_run``.

Task naming convention::

    news_radar.scraper.tasks.<action>

Retry policy:
    Scraping is stateful (each stored article mutates the DB), so
    ``max_retries=0``.  Per-article errors are handled inside the pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from news_radar.core.logging_config import job_id_var
from news_radar.scraper import pipeline, scheduler
from news_radar.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="news_radar.scraper.tasks.scrape_source_task",
    bind=True,
    acks_late=True,
    max_retries=0,
)
def scrape_source_task(self: Any, source_id: str) -> dict[str, Any]:
    """Scrape one source and store matching articles.

    Args:
        source_id: ID of the source to scrape.

    Returns:
        Dict with ``source_id``, ``processed``, ``saved``, ``errors`` and the
        IDs of the stored articles.
    """
    token = job_id_var.set(self.request.id)
    logger.info("scraper: scrape_source_task started for source=%s", source_id)
    try:
        result = asyncio.run(pipeline.scrape_source(source_id))
    except Exception as exc:  # noqa: BLE001
        logger.error("scraper: scrape_source_task failed for source=%s: %s", source_id, exc)
        raise
    finally:
        job_id_var.reset(token)

    return {
        "source_id": source_id,
        "processed": result.processed_count,
        "saved": result.saved_count,
        "errors": result.error_count,
        "article_ids": [article.id for article in result.new_articles],
    }


@celery_app.task(
    name="news_radar.scraper.tasks.run_global_scrape_task",
    bind=True,
    acks_late=True,
    max_retries=0,
    soft_time_limit=7_200,
    time_limit=10_800,
)
def run_global_scrape_task(self: Any, user_id: str) -> dict[str, Any]:
    """Run the global scrape job for one tenant.

    Returns:
        The job summary produced by
        :func:`~news_radar.scraper.pipeline.run_global_scrape_job`.
    """
    token = job_id_var.set(self.request.id)
    logger.info("scraper: run_global_scrape_task started for user=%s", user_id)
    try:
        return asyncio.run(pipeline.run_global_scrape_job(user_id))
    except Exception as exc:  # noqa: BLE001
        logger.error("scraper: run_global_scrape_task failed for user=%s: %s", user_id, exc)
        raise
    finally:
        job_id_var.reset(token)


@celery_app.task(
    name="news_radar.scraper.tasks.dispatch_scheduled_scrapes",
    acks_late=True,
    max_retries=0,
)
def dispatch_scheduled_scrapes() -> dict[str, Any]:
    """Enqueue global scrape jobs for tenants whose schedule is due.

    ``last_run`` is stamped before enqueueing so that a slow job is not
    dispatched again by the next Beat tick.

    Returns:
        Dict with the list of ``dispatched`` user IDs.
    """
    dispatched: list[str] = []
    for user_id in scheduler.due_user_ids():
        scheduler.mark_run(user_id)
        run_global_scrape_task.delay(user_id)
        dispatched.append(user_id)
        logger.info("scheduler: dispatched auto-scrape for user=%s", user_id)
    return {"dispatched": dispatched}

