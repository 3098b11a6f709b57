"""SQLAlchemy declarative base and shared mixins for all ORM models.

Provides:
- Base: the DeclarativeBase subclass all models inherit from
- TimestampMixin: created_at column with a server-side default
- UserOwnedMixin: user_id column scoping a row to one tenant

Column types are kept portable (``sa.Uuid``, ``sa.JSON``) so that the same
models run against PostgreSQL in production and SQLite in tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_id() -> str:
    """Return a new random UUID string for use as a primary key."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Shared declarative base for all News Radar models."""


class TimestampMixin:
    """Adds a created_at column filled in by the database on INSERT."""

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


class UserOwnedMixin:
    """Adds a user_id column that references users.id.

    Tables that include this mixin are tenant-scoped: queries must always
    filter by user_id to keep tenants' sources, keywords and articles apart.
    """

    user_id: Mapped[str] = mapped_column(
        sa.String(36),
        sa.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
