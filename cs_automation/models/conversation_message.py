"""Conversation message model: the append-only customer service log."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Float, Index, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from cs_automation.db.base import Base, JSONType, UTCDateTime
from cs_automation.models.base import TimestampMixin


class SenderRole(str, Enum):
    """Who wrote the message."""

    CUSTOMER = "customer"
    BOT = "bot"
    AGENT = "agent"


class MessageSource(str, Enum):
    """Transport the message arrived on or was delivered through."""

    WHATSAPP = "whatsapp"
    WEB = "web"


class DeliveryStatus(str, Enum):
    """Delivery status enum."""

    RECEIVED = "received"
    SENT = "sent"
    FAILED = "failed"


class ConversationMessage(Base, TimestampMixin):
    """A single message in a customer service thread.

    A thread is every message sharing tenant, intent and participant identity
    (phone number or web session id, never both).
    """

    __tablename__ = "conversation_messages"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    intent: Mapped[str] = mapped_column(String(50), nullable=False, default="client")

    phone_number: Mapped[str | None] = mapped_column(String(32))
    web_session_id: Mapped[str | None] = mapped_column(String(128))
    participant_name: Mapped[str | None] = mapped_column(String(255))

    source: Mapped[MessageSource] = mapped_column(SQLEnum(MessageSource), nullable=False)
    sender: Mapped[SenderRole] = mapped_column(SQLEnum(SenderRole), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    delivery_status: Mapped[DeliveryStatus] = mapped_column(
        SQLEnum(DeliveryStatus), default=DeliveryStatus.RECEIVED, nullable=False
    )

    rule_id: Mapped[UUID | None] = mapped_column()
    response_time: Mapped[float | None] = mapped_column(Float)  # seconds

    # Written later by the classification step
    message_type: Mapped[str | None] = mapped_column(String(50))
    subject: Mapped[str | None] = mapped_column(String(255))

    external_id: Mapped[str | None] = mapped_column(String(100))
    extra_data: Mapped[dict | None] = mapped_column(JSONType)

    synchronized_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

    @property
    def participant_key(self) -> str:
        return self.phone_number or self.web_session_id or ""

    __table_args__ = (
        CheckConstraint(
            "(phone_number IS NULL) <> (web_session_id IS NULL)",
            name="ck_conversation_messages_one_participant",
        ),
        Index("ix_conversation_messages_scope_created", "tenant_id", "intent", "created_at"),
        Index("ix_conversation_messages_phone", "tenant_id", "intent", "phone_number"),
        Index("ix_conversation_messages_web_session", "tenant_id", "intent", "web_session_id"),
        Index("ix_conversation_messages_unsynced", "tenant_id", "intent", "synchronized_at"),
    )
