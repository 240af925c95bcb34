"""Pydantic schemas for request/response models."""

from cs_automation.schemas.analytics import AnalyticsSnapshot, ResponseTimeDistribution
from cs_automation.schemas.auto_reply_rule import (
    AutoReplyRuleCreate,
    AutoReplyRuleDetail,
    AutoReplyRuleList,
    AutoReplyRuleUpdate,
    RuleOverlapDetail,
)
from cs_automation.schemas.conversation import (
    ClassificationUpdate,
    ConversationList,
    ConversationMessageDetail,
    DispatchResult,
    InboundMessage,
    InboundResult,
    ManualMessageCreate,
    Participant,
    ThreadDetail,
    ThreadList,
    WidgetMessageCreate,
)
from cs_automation.schemas.deletion import (
    CutoffSelection,
    DeletionRequest,
    DeletionResult,
    IdSelection,
    Timeframe,
    TimeframeSelection,
)
from cs_automation.schemas.webhook import WebhookPayload

__all__ = [
    # Analytics
    "AnalyticsSnapshot",
    "ResponseTimeDistribution",
    # Rules
    "AutoReplyRuleCreate",
    "AutoReplyRuleDetail",
    "AutoReplyRuleList",
    "AutoReplyRuleUpdate",
    "RuleOverlapDetail",
    # Conversations
    "ClassificationUpdate",
    "ConversationList",
    "ConversationMessageDetail",
    "DispatchResult",
    "InboundMessage",
    "InboundResult",
    "ManualMessageCreate",
    "Participant",
    "ThreadDetail",
    "ThreadList",
    "WidgetMessageCreate",
    # Deletion
    "CutoffSelection",
    "DeletionRequest",
    "DeletionResult",
    "IdSelection",
    "Timeframe",
    "TimeframeSelection",
    # Webhooks
    "WebhookPayload",
]
