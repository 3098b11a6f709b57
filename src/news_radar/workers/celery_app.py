"""Celery application for News Radar.

Configures the broker, result backend, serialization, task routing and the
Beat schedule.  All configuration values are sourced from ``Settings`` so
that no secrets or environment-specific values are hard-coded here.

Usage (starting a scraping worker)::

    celery -A news_radar.workers.celery_app worker -Q scraping --loglevel=info

Usage (starting the Beat scheduler for auto-scrape dispatch)::

    celery -A news_radar.workers.celery_app beat --loglevel=info

Usage (within application code)::

    from news_radar.workers.celery_app import celery_app

    celery_app.send_task(
        "news_radar.scraper.tasks.scrape_source_task",
        kwargs={"source_id": source_id},
    )
"""

from __future__ import annotations

import logging

from celery import Celery
from celery.signals import after_setup_logger, worker_process_init
from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

load_dotenv()

from news_radar.config.settings import get_settings  # noqa: E402

settings = get_settings()

#: The global Celery application instance.
celery_app = Celery(
    "news_radar",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["news_radar.scraper.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # Acknowledge after completion so a crashed worker's job is redelivered.
    task_acks_late=True,
    # Scrape jobs are long; do not let one worker hoard them.
    worker_prefetch_multiplier=1,
    result_expires=86_400,
    task_soft_time_limit=3_600,
    task_time_limit=7_200,
    task_routes={
        "news_radar.scraper.tasks.*": {"queue": "scraping"},
    },
    beat_schedule_filename="celerybeat-schedule",
)

from news_radar.workers.beat_schedule import beat_schedule  # noqa: E402

celery_app.conf.beat_schedule = beat_schedule


@after_setup_logger.connect
def _configure_structlog(**kwargs: object) -> None:  # noqa: ARG001
    """Replace Celery's default log handlers with the structlog pipeline."""
    from news_radar.core.logging_config import configure_logging  # noqa: PLC0415

    configure_logging(get_settings().log_level)


@worker_process_init.connect
def _dispose_engine_on_fork(**kwargs: object) -> None:  # noqa: ARG001
    """Drop pooled DB connections inherited from the parent after fork."""
    from news_radar.core.database import dispose_engine  # noqa: PLC0415

    dispose_engine()
    _logger.debug("celery: disposed database engine after worker fork")
