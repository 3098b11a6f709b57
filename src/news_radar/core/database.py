"""SQLAlchemy engine and session factory.

Provides:
- get_engine():          the process-wide Engine, built lazily from settings
- SessionFactory:        type alias for the sessionmaker used by storage
- get_session_factory(): the process-wide sessionmaker
- get_sync_session():    context manager yielding a Session
- Base.metadata:         re-exported so table creation can reference it
                         without importing individual models

The engine is built on first use rather than at import time so that tests
(and Celery workers after fork) can swap or dispose it cleanly.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from news_radar.core.models import Base  # noqa: F401

SessionFactory = sessionmaker[Session]


def build_engine(database_url: str) -> Engine:
    """Create an engine for *database_url*.

    SQLite URLs get ``check_same_thread=False`` because sessions may be
    opened from worker threads.  Server databases get a pre-pinged
    connection pool sized for a scraping worker.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Return the process-wide engine built from ``Settings.database_url``."""
    from news_radar.config.settings import get_settings  # noqa: PLC0415

    return build_engine(get_settings().database_url)


@lru_cache(maxsize=1)
def get_session_factory() -> SessionFactory:
    """Return the process-wide session factory bound to :func:`get_engine`."""
    return sessionmaker(
        bind=get_engine(),
        expire_on_commit=False,
        autoflush=False,
    )


@contextmanager
def get_sync_session() -> Generator[Session, None, None]:
    """Yield a Session that is rolled back on exception and always closed.

    The caller is responsible for committing.

    Usage::

        with get_sync_session() as session:
            session.add(obj)
            session.commit()
    """
    session = get_session_factory()()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    """Dispose the cached engine's connection pool (used after worker fork)."""
    if get_engine.cache_info().currsize:
        get_engine().dispose(close=False)
