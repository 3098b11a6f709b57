"""SQLAlchemy ORM models for stored articles and per-tenant settings."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from news_radar.core.models.base import Base, TimestampMixin, UserOwnedMixin, new_id


class Article(UserOwnedMixin, TimestampMixin, Base):
    """An article that matched at least one of its tenant's keywords.

    The ``(user_id, url)`` pair is unique: the same article is stored at most
    once per tenant no matter how many sources link to it.
    """

    __tablename__ = "articles"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True, default=new_id)
    source_id: Mapped[Optional[str]] = mapped_column(
        sa.String(36),
        sa.ForeignKey("sources.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    content: Mapped[str] = mapped_column(sa.Text, nullable=False, default="")
    url: Mapped[str] = mapped_column(sa.Text, nullable=False)
    author: Mapped[Optional[str]] = mapped_column(sa.String(512), nullable=True)
    publish_date: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    summary: Mapped[Optional[str]] = mapped_column(sa.Text, nullable=True)
    detected_keywords: Mapped[list[str]] = mapped_column(
        sa.JSON, nullable=False, default=list
    )

    __table_args__ = (
        sa.UniqueConstraint("user_id", "url", name="uq_articles_user_url"),
    )


class UserSetting(Base):
    """A JSON-valued per-tenant setting (e.g. the auto-scrape schedule)."""

    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(
        sa.String(36),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    key: Mapped[str] = mapped_column(sa.String(128), primary_key=True)
    value: Mapped[Any] = mapped_column(sa.JSON, nullable=False)
