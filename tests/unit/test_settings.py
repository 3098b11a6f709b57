"""Unit tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from news_radar.config.settings import Settings, get_settings
from news_radar.scraper.method_selector import FetchOptions


class TestSettings:
    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("DELAY_MIN", "0.5")
        monkeypatch.setenv("DELAY_MAX", "2")
        monkeypatch.setenv("USE_BROWSER_FALLBACK", "false")
        settings = Settings()
        assert settings.delay_min == 0.5
        assert settings.delay_max == 2.0
        assert settings.use_browser_fallback is False

    def test_delay_bounds_validated(self) -> None:
        with pytest.raises(ValidationError):
            Settings(delay_min=5.0, delay_max=1.0)

    def test_concurrency_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(article_concurrency=0)

    def test_get_settings_is_cached(self) -> None:
        get_settings.cache_clear()
        assert get_settings() is get_settings()

    def test_fetch_options_from_settings(self) -> None:
        settings = Settings(
            http_timeout_seconds=12,
            browser_timeout_seconds=45,
            respect_robots_txt=False,
            use_browser_fallback=False,
        )
        options = FetchOptions.from_settings(settings)
        assert options == FetchOptions(
            http_timeout=12, browser_timeout=45, respect_robots=False, use_browser=False
        )
