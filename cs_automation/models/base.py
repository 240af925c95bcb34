"""Shared model mixins."""

from datetime import datetime, timezone

from sqlalchemy.orm import Mapped, mapped_column

from cs_automation.db.base import UTCDateTime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Adds created_at/updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )
