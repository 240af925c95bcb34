"""Repository classes for database operations."""

from cs_automation.db.repositories.auto_reply_rule import AutoReplyRuleRepository
from cs_automation.db.repositories.base import BaseRepository
from cs_automation.db.repositories.conversation_message import ConversationMessageRepository

__all__ = [
    "AutoReplyRuleRepository",
    "BaseRepository",
    "ConversationMessageRepository",
]
