"""Per-tenant auto-scrape schedules.

Each tenant stores a setting ``auto_scrape_frequency``::

    {"enabled": true, "interval": 3600, "last_run": "2026-01-01T00:00:00+00:00"}

Celery Beat runs ``dispatch_scheduled_scrapes`` every 15 minutes (the
shortest supported interval); the dispatcher uses :func:`due_user_ids` to
find tenants whose interval has elapsed since ``last_run`` and enqueues a
global scrape job for each.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel

from news_radar.core.storage import NewsRadarStorage

logger = logging.getLogger(__name__)

AUTO_SCRAPE_FREQUENCY_KEY = "auto_scrape_frequency"


class JobInterval(int, enum.Enum):
    """Supported auto-scrape intervals, in seconds."""

    FIFTEEN_MINUTES = 15 * 60
    HOURLY = 60 * 60
    FOUR_HOURS = 4 * 60 * 60
    TWICE_DAILY = 12 * 60 * 60
    DAILY = 24 * 60 * 60
    WEEKLY = 7 * 24 * 60 * 60


class UserSchedule(BaseModel):
    """A tenant's auto-scrape schedule as stored in their settings."""

    enabled: bool = False
    interval: JobInterval = JobInterval.DAILY
    last_run: datetime | None = None

    def to_setting(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "interval": int(self.interval),
            "last_run": self.last_run.isoformat() if self.last_run else None,
        }


def get_user_schedule(user_id: str, *, storage: NewsRadarStorage | None = None) -> UserSchedule:
    """Return the tenant's schedule, or the disabled daily default."""
    storage = storage or NewsRadarStorage()
    value = storage.get_setting(AUTO_SCRAPE_FREQUENCY_KEY, user_id)
    if not value:
        return UserSchedule()
    return UserSchedule.model_validate(value)


def update_user_schedule(
    user_id: str,
    enabled: bool,
    interval: JobInterval | int,
    *,
    storage: NewsRadarStorage | None = None,
    now: datetime | None = None,
) -> UserSchedule:
    """Store a tenant's schedule.

    Enabling clears ``last_run`` so the first job runs at the next dispatch;
    disabling stamps ``last_run`` with the current time.

    Raises:
        ValueError: If *interval* is not a :class:`JobInterval` value.
    """
    storage = storage or NewsRadarStorage()
    schedule = UserSchedule(
        enabled=enabled,
        interval=JobInterval(interval),
        last_run=None if enabled else (now or datetime.now(tz=timezone.utc)),
    )
    storage.set_setting(AUTO_SCRAPE_FREQUENCY_KEY, schedule.to_setting(), user_id)
    logger.info(
        "scheduler: auto-scrape for user %s %s (interval=%ss)",
        user_id,
        "enabled" if enabled else "disabled",
        int(schedule.interval),
    )
    return schedule


def mark_run(
    user_id: str,
    *,
    storage: NewsRadarStorage | None = None,
    now: datetime | None = None,
) -> UserSchedule:
    """Stamp ``last_run`` on the tenant's schedule."""
    storage = storage or NewsRadarStorage()
    schedule = get_user_schedule(user_id, storage=storage)
    schedule.last_run = now or datetime.now(tz=timezone.utc)
    storage.set_setting(AUTO_SCRAPE_FREQUENCY_KEY, schedule.to_setting(), user_id)
    return schedule


def is_due(schedule: UserSchedule, now: datetime | None = None) -> bool:
    """Return ``True`` if an enabled schedule's interval has elapsed."""
    if not schedule.enabled:
        return False
    if schedule.last_run is None:
        return True
    now = now or datetime.now(tz=timezone.utc)
    last_run = schedule.last_run
    if last_run.tzinfo is None:
        last_run = last_run.replace(tzinfo=timezone.utc)
    return now - last_run >= timedelta(seconds=int(schedule.interval))


def due_user_ids(
    now: datetime | None = None,
    *,
    storage: NewsRadarStorage | None = None,
) -> list[str]:
    """Return tenants with auto-scrape sources whose schedule is due."""
    storage = storage or NewsRadarStorage()
    user_ids = list(dict.fromkeys(s.user_id for s in storage.get_auto_scrape_sources()))
    due: list[str] = []
    for user_id in user_ids:
        try:
            schedule = get_user_schedule(user_id, storage=storage)
        except ValueError as exc:
            logger.warning("scheduler: invalid schedule for user %s: %s", user_id, exc)
            continue
        if is_due(schedule, now):
            due.append(user_id)
    logger.info("scheduler: %d of %d users due for auto-scrape", len(due), len(user_ids))
    return due
