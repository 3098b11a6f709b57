"""Unit tests for NewsRadarStorage against an in-memory SQLite database."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest


class TestUsers:
    def test_upsert_creates_and_updates(self, storage) -> None:
        storage.upsert_user("u-1", email="old@example.org")
        storage.upsert_user("u-1", email="new@example.org")
        assert storage.get_user_email("u-1") == "new@example.org"

    def test_upsert_without_email_keeps_existing(self, storage) -> None:
        storage.upsert_user("u-1", email="keep@example.org")
        storage.upsert_user("u-1")
        assert storage.get_user_email("u-1") == "keep@example.org"

    def test_unknown_user_has_no_email(self, storage) -> None:
        assert storage.get_user_email("nobody") is None


class TestSources:
    def test_create_and_get(self, storage, user_id) -> None:
        source = storage.create_source(
            user_id,
            "The Record",
            "https://therecord.media/",
            scraping_config={"title_selector": "h1"},
        )
        loaded = storage.get_source(source.id)
        assert loaded is not None
        assert loaded.name == "The Record"
        assert loaded.scraping_config == {"title_selector": "h1"}
        assert loaded.active is True
        assert loaded.include_in_auto_scrape is True

    def test_auto_scrape_sources_filtering(self, storage, user_id) -> None:
        storage.upsert_user("u-2")
        auto = storage.create_source(user_id, "Auto", "https://a.example.com/")
        storage.create_source(user_id, "Manual", "https://m.example.com/", include_in_auto_scrape=False)
        storage.create_source(user_id, "Inactive", "https://i.example.com/", active=False)
        other = storage.create_source("u-2", "Other tenant", "https://o.example.com/")

        assert [s.id for s in storage.get_auto_scrape_sources(user_id)] == [auto.id]
        assert {s.id for s in storage.get_auto_scrape_sources()} == {auto.id, other.id}

    def test_update_source(self, storage, user_id) -> None:
        source = storage.create_source(user_id, "Auto", "https://a.example.com/")
        stamp = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)
        updated = storage.update_source(source.id, last_scraped=stamp, active=False)
        assert updated is not None
        assert updated.active is False
        assert storage.get_source(source.id).last_scraped is not None

    def test_update_unknown_field_rejected(self, storage, user_id) -> None:
        source = storage.create_source(user_id, "Auto", "https://a.example.com/")
        with pytest.raises(ValueError, match="user_id"):
            storage.update_source(source.id, user_id="someone-else")

    def test_update_missing_source(self, storage) -> None:
        assert storage.update_source("missing", active=False) is None


class TestKeywords:
    def test_only_active_keywords_for_tenant(self, storage, user_id) -> None:
        storage.upsert_user("u-2")
        storage.add_keyword(user_id, "ransomware")
        storage.add_keyword(user_id, "phishing", active=False)
        storage.add_keyword("u-2", "botnet")

        assert storage.get_active_keywords(user_id) == ["ransomware"]


class TestArticles:
    def _create(self, storage, user_id, url="https://x.example.com/a", **kwargs):
        return storage.create_article(
            user_id=user_id,
            source_id=None,
            url=url,
            title="Title",
            content="Body",
            detected_keywords=["ransomware"],
            **kwargs,
        )

    def test_create_and_lookup(self, storage, user_id) -> None:
        article = self._create(storage, user_id, summary="Short summary")
        assert article is not None and article.id
        found = storage.get_article_by_url("https://x.example.com/a", user_id)
        assert found is not None
        assert found.detected_keywords == ["ransomware"]
        assert found.summary == "Short summary"

    def test_duplicate_url_per_tenant_returns_none(self, storage, user_id) -> None:
        assert self._create(storage, user_id) is not None
        assert self._create(storage, user_id) is None
        assert len(storage.list_articles(user_id)) == 1

    def test_same_url_allowed_for_other_tenant(self, storage, user_id) -> None:
        storage.upsert_user("u-2")
        assert self._create(storage, user_id) is not None
        assert self._create(storage, "u-2") is not None
        assert storage.get_article_by_url("https://x.example.com/a", "u-2") is not None


class TestSettings:
    def test_get_missing_setting(self, storage, user_id) -> None:
        assert storage.get_setting("auto_scrape_frequency", user_id) is None

    def test_set_and_overwrite(self, storage, user_id) -> None:
        storage.set_setting("auto_scrape_frequency", {"enabled": True}, user_id)
        storage.set_setting("auto_scrape_frequency", {"enabled": False}, user_id)
        assert storage.get_setting("auto_scrape_frequency", user_id) == {"enabled": False}
