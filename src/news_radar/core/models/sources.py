"""SQLAlchemy ORM models for news sources and tenant keywords."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from news_radar.core.models.base import Base, TimestampMixin, UserOwnedMixin, new_id


class Source(UserOwnedMixin, TimestampMixin, Base):
    """A listing page that is scraped for article links.

    Attributes:
        id: UUID string primary key.
        user_id: Owning tenant.
        name: Display name used in logs and notification emails.
        url: Listing page URL (front page or section page).
        active: Inactive sources are never scraped.
        include_in_auto_scrape: Whether scheduled jobs pick up this source.
        scraping_config: Optional CSS selectors for article pages, stored as
            ``{"title_selector": ..., "content_selector": ...,
            "author_selector": ..., "date_selector": ...}``.
        last_scraped: Timestamp of the last completed scrape.
    """

    __tablename__ = "sources"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    url: Mapped[str] = mapped_column(sa.Text, nullable=False)
    active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    include_in_auto_scrape: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True
    )
    scraping_config: Mapped[Optional[dict]] = mapped_column(sa.JSON, nullable=True)
    last_scraped: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )


class Keyword(UserOwnedMixin, TimestampMixin, Base):
    """A term a tenant wants articles matched against.

    Attributes:
        id: UUID string primary key.
        user_id: Owning tenant.
        term: Keyword or phrase, matched on whole-word boundaries.
        active: Inactive keywords are ignored during matching.
    """

    __tablename__ = "keywords"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    term: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    active: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
