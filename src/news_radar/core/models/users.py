"""SQLAlchemy ORM model for tenants.

Identity is managed by an external identity provider; this table only keeps
the opaque user ID and the address new-article notifications are sent to.
"""

from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from news_radar.core.models.base import Base, TimestampMixin


class User(TimestampMixin, Base):
    """A tenant of the news radar.

    Attributes:
        id: Opaque identity-provider user ID.
        email: Notification address, or ``None`` when notifications are off.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(sa.String(36), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(sa.String(320), nullable=True)
