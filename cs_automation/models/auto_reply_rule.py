"""Auto-reply rule model."""

from uuid import UUID, uuid4

from sqlalchemy import Boolean, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from cs_automation.db.base import Base, JSONType
from cs_automation.models.base import TimestampMixin


class AutoReplyRule(Base, TimestampMixin):
    """Keyword-triggered automatic response owned by a tenant."""

    __tablename__ = "auto_reply_rules"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)

    trigger_words: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    response: Mapped[str] = mapped_column(Text, nullable=False)
    variables: Mapped[dict | None] = mapped_column(JSONType)

    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("ix_auto_reply_rules_tenant_priority", "tenant_id", "priority"),
    )
