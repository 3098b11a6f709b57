"""Unit tests for per-tenant auto-scrape schedules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from news_radar.scraper.scheduler import (
    AUTO_SCRAPE_FREQUENCY_KEY,
    JobInterval,
    UserSchedule,
    due_user_ids,
    get_user_schedule,
    is_due,
    mark_run,
    update_user_schedule,
)

_NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


class TestUserSchedule:
    def test_defaults(self) -> None:
        schedule = UserSchedule()
        assert schedule.enabled is False
        assert schedule.interval is JobInterval.DAILY
        assert schedule.last_run is None

    def test_to_setting_round_trips_through_validation(self) -> None:
        schedule = UserSchedule(enabled=True, interval=JobInterval.HOURLY, last_run=_NOW)
        setting = schedule.to_setting()
        assert setting == {"enabled": True, "interval": 3600, "last_run": _NOW.isoformat()}
        assert UserSchedule.model_validate(setting) == schedule

    def test_unknown_interval_rejected(self) -> None:
        with pytest.raises(ValueError):
            UserSchedule.model_validate({"enabled": True, "interval": 42})


class TestIsDue:
    def test_disabled_never_due(self) -> None:
        assert is_due(UserSchedule(enabled=False), _NOW) is False

    def test_never_run_is_due(self) -> None:
        assert is_due(UserSchedule(enabled=True), _NOW) is True

    def test_interval_elapsed(self) -> None:
        schedule = UserSchedule(
            enabled=True, interval=JobInterval.HOURLY, last_run=_NOW - timedelta(minutes=61)
        )
        assert is_due(schedule, _NOW) is True

    def test_interval_not_elapsed(self) -> None:
        schedule = UserSchedule(
            enabled=True, interval=JobInterval.HOURLY, last_run=_NOW - timedelta(minutes=30)
        )
        assert is_due(schedule, _NOW) is False

    def test_naive_last_run_treated_as_utc(self) -> None:
        schedule = UserSchedule(
            enabled=True,
            interval=JobInterval.FIFTEEN_MINUTES,
            last_run=(_NOW - timedelta(minutes=20)).replace(tzinfo=None),
        )
        assert is_due(schedule, _NOW) is True


class TestStoredSchedules:
    def test_missing_setting_returns_default(self, storage, user_id) -> None:
        assert get_user_schedule(user_id, storage=storage) == UserSchedule()

    def test_enable_clears_last_run(self, storage, user_id) -> None:
        update_user_schedule(user_id, True, 3600, storage=storage, now=_NOW)
        stored = storage.get_setting(AUTO_SCRAPE_FREQUENCY_KEY, user_id)
        assert stored == {"enabled": True, "interval": 3600, "last_run": None}

    def test_disable_stamps_last_run(self, storage, user_id) -> None:
        schedule = update_user_schedule(
            user_id, False, JobInterval.DAILY, storage=storage, now=_NOW
        )
        assert schedule.last_run == _NOW
        assert get_user_schedule(user_id, storage=storage).last_run == _NOW

    def test_invalid_interval_raises(self, storage, user_id) -> None:
        with pytest.raises(ValueError):
            update_user_schedule(user_id, True, 42, storage=storage)

    def test_mark_run(self, storage, user_id) -> None:
        update_user_schedule(user_id, True, JobInterval.HOURLY, storage=storage)
        mark_run(user_id, storage=storage, now=_NOW)
        schedule = get_user_schedule(user_id, storage=storage)
        assert schedule.enabled is True
        assert schedule.last_run == _NOW


class TestDueUserIds:
    def test_only_due_users_with_auto_sources(self, storage) -> None:
        for uid in ("due", "recent", "disabled", "no-sources", "broken"):
            storage.upsert_user(uid)
        for uid in ("due", "recent", "disabled", "broken"):
            storage.create_source(uid, f"{uid} source", f"https://{uid}.example.com/")

        update_user_schedule("due", True, JobInterval.HOURLY, storage=storage)
        update_user_schedule("recent", True, JobInterval.HOURLY, storage=storage)
        mark_run("recent", storage=storage, now=_NOW - timedelta(minutes=10))
        update_user_schedule("disabled", False, JobInterval.HOURLY, storage=storage)
        update_user_schedule("no-sources", True, JobInterval.HOURLY, storage=storage)
        storage.set_setting(AUTO_SCRAPE_FREQUENCY_KEY, {"enabled": True, "interval": 7}, "broken")

        assert due_user_ids(_NOW, storage=storage) == ["due"]
