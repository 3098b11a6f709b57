"""Celery Beat periodic task schedule for News Radar.

This module is imported by ``celery_app.py`` and applied via
``celery_app.conf.beat_schedule``.

Schedule overview:

+----------------------------+------------------+-------------------------------+
| Task name                  | Schedule         | Purpose                       |
+============================+==================+===============================+
| dispatch_scheduled_scrapes | Every 15 minutes | Enqueue a global scrape job   |
|                            |                  | for every tenant whose        |
|                            |                  | auto-scrape interval elapsed. |
+----------------------------+------------------+-------------------------------+
"""

from __future__ import annotations

from celery.schedules import crontab

#: Celery Beat schedule dict.  Applied to ``celery_app.conf.beat_schedule``
#: in ``celery_app.py``.
beat_schedule: dict[str, dict] = {  # type: ignore[type-arg]
    # Matches the shortest supported auto-scrape interval.
    "dispatch_scheduled_scrapes": {
        "task": "news_radar.scraper.tasks.dispatch_scheduled_scrapes",
        "schedule": crontab(minute="*/15"),
        "options": {
            "queue": "scraping",
            "expires": 600,
        },
    },
}
