"""Shared pytest fixtures for News Radar tests.

Fixture summary
---------------
session_factory — sessionmaker bound to a fresh in-memory SQLite database.
storage         — NewsRadarStorage over ``session_factory`` with tables created.
user_id         — ID of a tenant row created in ``storage``.
scrape_settings — Settings tuned for fast, browser-free pipeline tests.

All tests run without external infrastructure: HTTP is mocked with
``respx``, the browser and SMTP with ``unittest.mock``.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# ---------------------------------------------------------------------------
# Test environment bootstrap
# ---------------------------------------------------------------------------
# Set env vars before any application modules are imported so that
# Settings() never picks up a developer's .env values during collection.

_TEST_ENV_DEFAULTS: dict[str, str] = {
    "DATABASE_URL": "sqlite://",
    "CELERY_BROKER_URL": "memory://",
    "CELERY_RESULT_BACKEND": "cache+memory://",
    "LOG_LEVEL": "WARNING",
}

for _key, _default in _TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _default)

# ---------------------------------------------------------------------------
# Application imports (after env bootstrap)
# ---------------------------------------------------------------------------

from news_radar.config.settings import Settings, get_settings  # noqa: E402
from news_radar.core.storage import NewsRadarStorage  # noqa: E402

# Clear the lru_cache so Settings() re-reads from the patched environment.
get_settings.cache_clear()


@pytest.fixture()
def session_factory() -> sessionmaker:
    """Return a sessionmaker bound to a private in-memory SQLite database.

    ``StaticPool`` keeps the single connection alive so every session sees
    the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    factory = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture()
def storage(session_factory: sessionmaker) -> NewsRadarStorage:
    repo = NewsRadarStorage(session_factory)
    repo.create_tables()
    return repo


@pytest.fixture()
def user_id(storage: NewsRadarStorage) -> str:
    return storage.upsert_user("user-1", email="analyst@example.org").id


@pytest.fixture()
def scrape_settings() -> Settings:
    """Settings with no delays and no browser, for pipeline tests."""
    return Settings(
        delay_min=0.0,
        delay_max=0.0,
        use_browser_fallback=False,
        use_rss_fallback=True,
        respect_robots_txt=False,
        article_concurrency=2,
        max_articles_per_source=10,
    )
