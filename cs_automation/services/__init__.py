"""Business logic services."""

from cs_automation.services.analytics import AnalyticsAggregator
from cs_automation.services.dispatcher import ManualOverrideDispatcher, OutboundDispatcher
from cs_automation.services.inbound import InboundProcessor
from cs_automation.services.live_updates import (
    LiveUpdateBus,
    LiveUpdateEvent,
    conversation_scope,
    widget_scope,
)
from cs_automation.services.queue import publish_inbound_message
from cs_automation.services.retention import RetentionController
from cs_automation.services.rule_service import AutoReplyRuleService
from cs_automation.services.synchronizer import ConversationSynchronizer, ReconciliationReport
from cs_automation.services.transports import (
    DeliveryResult,
    TransportRouter,
    WebWidgetTransport,
    WhatsAppTransport,
)
from cs_automation.services.whatsapp_client import WhatsAppClient

__all__ = [
    "AnalyticsAggregator",
    "AutoReplyRuleService",
    "ConversationSynchronizer",
    "DeliveryResult",
    "InboundProcessor",
    "LiveUpdateBus",
    "LiveUpdateEvent",
    "ManualOverrideDispatcher",
    "OutboundDispatcher",
    "ReconciliationReport",
    "RetentionController",
    "TransportRouter",
    "WebWidgetTransport",
    "WhatsAppClient",
    "WhatsAppTransport",
    "conversation_scope",
    "publish_inbound_message",
    "widget_scope",
]
