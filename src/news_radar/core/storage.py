"""Tenant-scoped repository over the News Radar tables.

``NewsRadarStorage`` is the only place that builds queries.  Every method
opens its own short-lived session from the injected factory, commits where
it writes, and returns detached ORM objects (the factory is configured with
``expire_on_commit=False``).

Usage::

    storage = NewsRadarStorage()
    source = storage.get_source(source_id)
    keywords = storage.get_active_keywords(source.user_id)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from news_radar.core.database import SessionFactory, get_session_factory
from news_radar.core.models import Article, Base, Keyword, Source, User, UserSetting

logger = logging.getLogger(__name__)

#: Source columns that :meth:`NewsRadarStorage.update_source` may change.
_UPDATABLE_SOURCE_FIELDS: frozenset[str] = frozenset(
    {"name", "url", "active", "include_in_auto_scrape", "scraping_config", "last_scraped"}
)


class NewsRadarStorage:
    """Repository for sources, keywords, articles and per-tenant settings.

    Args:
        session_factory: Optional sessionmaker.  Defaults to the process-wide
            factory from :mod:`news_radar.core.database`; inject one bound to
            an in-memory SQLite engine in tests.
    """

    def __init__(self, session_factory: SessionFactory | None = None) -> None:
        self._session_factory = session_factory or get_session_factory()

    def create_tables(self) -> None:
        """Create all tables that do not exist yet."""
        with self._session_factory() as session:
            Base.metadata.create_all(session.get_bind())

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def upsert_user(self, user_id: str, email: str | None = None) -> User:
        with self._session_factory() as session:
            user = session.get(User, user_id)
            if user is None:
                user = User(id=user_id, email=email)
                session.add(user)
            elif email is not None:
                user.email = email
            session.commit()
            return user

    def get_user_email(self, user_id: str) -> str | None:
        with self._session_factory() as session:
            return session.scalar(select(User.email).where(User.id == user_id))

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def create_source(self, user_id: str, name: str, url: str, **fields: Any) -> Source:
        with self._session_factory() as session:
            source = Source(user_id=user_id, name=name, url=url, **fields)
            session.add(source)
            session.commit()
            return source

    def get_source(self, source_id: str) -> Source | None:
        with self._session_factory() as session:
            return session.get(Source, source_id)

    def get_auto_scrape_sources(self, user_id: str | None = None) -> list[Source]:
        """Return active sources flagged for auto-scrape.

        Args:
            user_id: Restrict to one tenant.  ``None`` returns every tenant's
                sources (used by the scheduler to find tenants to consider).
        """
        stmt = select(Source).where(
            Source.active.is_(True),
            Source.include_in_auto_scrape.is_(True),
        )
        if user_id is not None:
            stmt = stmt.where(Source.user_id == user_id)
        with self._session_factory() as session:
            return list(session.scalars(stmt.order_by(Source.created_at, Source.id)))

    def update_source(self, source_id: str, **fields: Any) -> Source | None:
        unknown = set(fields) - _UPDATABLE_SOURCE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update source fields: {sorted(unknown)}")
        with self._session_factory() as session:
            source = session.get(Source, source_id)
            if source is None:
                return None
            for name, value in fields.items():
                setattr(source, name, value)
            session.commit()
            return source

    # ------------------------------------------------------------------
    # Keywords
    # ------------------------------------------------------------------

    def add_keyword(self, user_id: str, term: str, active: bool = True) -> Keyword:
        with self._session_factory() as session:
            keyword = Keyword(user_id=user_id, term=term, active=active)
            session.add(keyword)
            session.commit()
            return keyword

    def get_active_keywords(self, user_id: str) -> list[str]:
        stmt = (
            select(Keyword.term)
            .where(Keyword.user_id == user_id, Keyword.active.is_(True))
            .order_by(Keyword.created_at, Keyword.id)
        )
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    def get_article_by_url(self, url: str, user_id: str) -> Article | None:
        stmt = select(Article).where(Article.user_id == user_id, Article.url == url)
        with self._session_factory() as session:
            return session.scalars(stmt).first()

    def create_article(
        self,
        *,
        user_id: str,
        source_id: str | None,
        url: str,
        title: str,
        content: str,
        author: str | None = None,
        publish_date: datetime | None = None,
        summary: str | None = None,
        detected_keywords: list[str] | None = None,
    ) -> Article | None:
        """Insert an article.

        Returns:
            The stored article, or ``None`` when the tenant already has an
            article with this URL (e.g. inserted concurrently by another
            worker).
        """
        article = Article(
            user_id=user_id,
            source_id=source_id,
            url=url,
            title=title,
            content=content,
            author=author,
            publish_date=publish_date,
            summary=summary,
            detected_keywords=list(detected_keywords or []),
        )
        with self._session_factory() as session:
            session.add(article)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.info("storage: article %s already stored for user %s", url, user_id)
                return None
            return article

    def list_articles(self, user_id: str) -> list[Article]:
        stmt = select(Article).where(Article.user_id == user_id).order_by(Article.created_at)
        with self._session_factory() as session:
            return list(session.scalars(stmt))

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_setting(self, key: str, user_id: str) -> Any | None:
        with self._session_factory() as session:
            row = session.get(UserSetting, (user_id, key))
            return row.value if row is not None else None

    def set_setting(self, key: str, value: Any, user_id: str) -> None:
        with self._session_factory() as session:
            row = session.get(UserSetting, (user_id, key))
            if row is None:
                session.add(UserSetting(user_id=user_id, key=key, value=value))
            else:
                row.value = value
            session.commit()
