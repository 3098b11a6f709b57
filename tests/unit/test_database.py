"""Unit tests for engine construction and the session helpers."""

from __future__ import annotations

import pytest
from sqlalchemy import text

from news_radar.core import database


@pytest.fixture()
def sqlite_factory(monkeypatch, session_factory):
    monkeypatch.setattr(database, "get_session_factory", lambda: session_factory)
    return session_factory


class TestBuildEngine:
    def test_sqlite_engine(self) -> None:
        engine = database.build_engine("sqlite://")
        try:
            with engine.connect() as conn:
                assert conn.execute(text("select 1")).scalar() == 1
        finally:
            engine.dispose()


class TestGetSyncSession:
    def test_yields_working_session(self, sqlite_factory) -> None:
        with database.get_sync_session() as session:
            assert session.execute(text("select 2")).scalar() == 2

    def test_exception_propagates(self, sqlite_factory) -> None:
        with pytest.raises(RuntimeError):
            with database.get_sync_session():
                raise RuntimeError("boom")


class TestDisposeEngine:
    def test_noop_before_first_use(self) -> None:
        database.get_engine.cache_clear()
        database.dispose_engine()
        assert database.get_engine.cache_info().currsize == 0
