"""SQLAlchemy models."""

from cs_automation.models.auto_reply_rule import AutoReplyRule
from cs_automation.models.conversation_message import (
    ConversationMessage,
    DeliveryStatus,
    MessageSource,
    SenderRole,
)

__all__ = [
    "AutoReplyRule",
    "ConversationMessage",
    "DeliveryStatus",
    "MessageSource",
    "SenderRole",
]
