"""Conversation schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from cs_automation.config import settings
from cs_automation.models.conversation_message import (
    DeliveryStatus,
    MessageSource,
    SenderRole,
)


class Participant(BaseModel):
    """One end user's side of a thread: a phone number or a web session id."""

    phone_number: str | None = Field(None, max_length=32)
    web_session_id: str | None = Field(None, max_length=128)

    @model_validator(mode="after")
    def check_single_identity(self) -> "Participant":
        if bool(self.phone_number) == bool(self.web_session_id):
            raise ValueError("Exactly one of phone_number or web_session_id must be set")
        return self

    @property
    def key(self) -> str:
        return self.phone_number or self.web_session_id or ""

    @property
    def channel(self) -> MessageSource:
        return MessageSource.WHATSAPP if self.phone_number else MessageSource.WEB


class InboundMessage(Participant):
    """Customer message arriving from either transport."""

    content: str = Field(..., min_length=1)
    source: MessageSource = MessageSource.WHATSAPP
    intent: str = Field(default=settings.DEFAULT_INTENT, max_length=50)
    participant_name: str | None = Field(None, max_length=255)
    external_id: str | None = Field(None, max_length=100)
    created_at: datetime | None = Field(
        None, description="Transport timestamp; defaults to receipt time"
    )
    extra_data: dict[str, Any] | None = None


class ManualMessageCreate(Participant):
    """Schema for an operator's manual message."""

    content: str = Field(..., min_length=1, description="Message content")
    intent: str = Field(default=settings.DEFAULT_INTENT, max_length=50)


class ClassificationUpdate(BaseModel):
    """Type/subject enrichment written by the classification step."""

    message_type: str | None = Field(None, max_length=50)
    subject: str | None = Field(None, max_length=255)


class ConversationMessageDetail(BaseModel):
    """Schema for message details."""

    id: UUID
    tenant_id: UUID
    intent: str
    phone_number: str | None
    web_session_id: str | None
    participant_name: str | None
    source: MessageSource
    sender: SenderRole
    content: str
    delivery_status: DeliveryStatus
    rule_id: UUID | None
    response_time: float | None
    message_type: str | None
    subject: str | None
    external_id: str | None
    extra_data: dict[str, Any] | None
    synchronized_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class ConversationList(BaseModel):
    """Most-recent-first conversation listing.

    `stale` is set when reconciliation failed and the listing fell back to
    the last synchronized state.
    """

    items: list[ConversationMessageDetail]
    total: int
    limit: int
    stale: bool = False
    sync_error: str | None = None


class ThreadDetail(BaseModel):
    """A participant's thread, materialized on read."""

    participant_key: str
    channel: MessageSource
    participant_name: str | None
    phone_number: str | None
    web_session_id: str | None
    messages: list[ConversationMessageDetail]
    message_count: int
    customer_message_count: int
    bot_message_count: int
    agent_message_count: int
    first_message_at: datetime
    last_activity_at: datetime
    status: str


class ThreadList(BaseModel):
    """Threads ordered by last activity, most recent first."""

    items: list[ThreadDetail]
    total: int
    stale: bool = False
    sync_error: str | None = None


class DispatchResult(BaseModel):
    """Outcome of delivering an outbound (manual or automatic) message."""

    success: bool
    delivery_status: DeliveryStatus
    message_id: UUID | None = None
    content: str
    channel: MessageSource
    error: str | None = None


class InboundResult(BaseModel):
    """Outcome of processing one inbound customer message."""

    message_id: UUID | None
    duplicate: bool = False
    rule_id: UUID | None = None
    auto_reply: DispatchResult | None = None


class WidgetMessageCreate(BaseModel):
    """Message typed by a visitor into the embedded web widget."""

    session_id: str = Field(..., min_length=1, max_length=128)
    content: str = Field(..., min_length=1)
    intent: str = Field(default=settings.DEFAULT_INTENT, max_length=50)
    participant_name: str | None = Field(None, max_length=255)
    extra_data: dict[str, Any] | None = None
