"""Inbound customer message pipeline."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from cs_automation.agents.rule_based import RuleEngine
from cs_automation.config import settings
from cs_automation.core.telemetry import get_tracer
from cs_automation.db.repositories import AutoReplyRuleRepository, ConversationMessageRepository
from cs_automation.models.conversation_message import DeliveryStatus, MessageSource, SenderRole
from cs_automation.schemas.conversation import InboundMessage, InboundResult, Participant
from cs_automation.services.dispatcher import OutboundDispatcher, validate_content
from cs_automation.services.live_updates import LiveUpdateBus, conversation_scope
from cs_automation.services.synchronizer import ConversationSynchronizer
from cs_automation.services.transports import TransportRouter

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


def inbound_from_whatsapp(data: dict, intent: str | None = None) -> InboundMessage | None:
    """Build an inbound message from a gateway "message" event.

    Returns None for events that are not customer text: group chats, our
    own outgoing messages and empty bodies.
    """
    if data.get("isGroup") or data.get("fromMe"):
        return None

    phone = (data.get("from") or "").replace("@s.whatsapp.net", "")
    content = (data.get("body") or data.get("caption") or "").strip()
    if not phone or not content:
        return None

    created_at = None
    if data.get("timestamp"):
        created_at = datetime.fromtimestamp(int(data["timestamp"]), tz=timezone.utc)

    return InboundMessage(
        phone_number=phone,
        content=content,
        source=MessageSource.WHATSAPP,
        intent=intent or data.get("intent") or settings.DEFAULT_INTENT,
        participant_name=data.get("pushName"),
        external_id=data.get("id"),
        created_at=created_at,
        extra_data=data,
    )


class InboundProcessor:
    """Records a customer message and answers it from the tenant's rules.

    Steps: validate, append, reconcile the participant's thread, evaluate
    rules, deliver the reply and record its outcome. A message removed as a
    duplicate during reconciliation gets no reply.
    """

    def __init__(
        self,
        db: AsyncSession,
        bus: LiveUpdateBus,
        transports: TransportRouter | None = None,
    ):
        self.db = db
        self.bus = bus
        self.transports = transports
        self.messages = ConversationMessageRepository(db)
        self.rules = AutoReplyRuleRepository(db)
        self.synchronizer = ConversationSynchronizer(db, bus)

    async def handle(self, tenant_id: UUID, inbound: InboundMessage) -> InboundResult:
        content = validate_content(inbound.content)
        participant = Participant(
            phone_number=inbound.phone_number, web_session_id=inbound.web_session_id
        )
        received_at = inbound.created_at or datetime.now(timezone.utc)
        if received_at.tzinfo is None:
            received_at = received_at.replace(tzinfo=timezone.utc)

        with tracer.start_as_current_span("inbound.handle") as span:
            span.set_attribute("inbound.intent", inbound.intent)
            span.set_attribute("inbound.source", inbound.source.value)

            message = await self.messages.append(
                tenant_id=tenant_id,
                intent=inbound.intent,
                phone_number=inbound.phone_number,
                web_session_id=inbound.web_session_id,
                participant_name=inbound.participant_name,
                source=inbound.source,
                sender=SenderRole.CUSTOMER,
                content=content,
                delivery_status=DeliveryStatus.RECEIVED,
                external_id=inbound.external_id,
                extra_data=inbound.extra_data,
                created_at=received_at,
            )
            message_id = message.id

            # A concurrent pass may have removed this copy without reporting it here
            report = await self.synchronizer.reconcile(tenant_id, inbound.intent, participant)
            if message_id in report.removed_ids or not await self.messages.exists(message_id):
                logger.info(f"Duplicate message from {participant.key} dropped")
                span.set_attribute("inbound.duplicate", True)
                return InboundResult(message_id=None, duplicate=True)

            dispatcher = OutboundDispatcher(
                self.db,
                self.bus,
                self.transports or TransportRouter.for_tenant(tenant_id, self.bus),
            )
            context = await dispatcher.template_context(tenant_id, inbound.intent, participant)
            if inbound.participant_name:
                context = dataclasses.replace(context, name=inbound.participant_name)

            engine = RuleEngine(await self.rules.get_active_for_tenant(tenant_id), tenant_id)
            match = engine.evaluate(content, context)

            if match is None:
                await self.bus.notify(
                    conversation_scope(tenant_id, inbound.intent), "message_received"
                )
                return InboundResult(message_id=message_id)

            span.set_attribute("inbound.rule_id", str(match.rule_id))
            response_time = (datetime.now(timezone.utc) - received_at).total_seconds()
            reply = await dispatcher.deliver(
                tenant_id,
                inbound.intent,
                participant,
                match.response,
                sender=SenderRole.BOT,
                rule_id=match.rule_id,
                response_time=max(response_time, 0.0),
                participant_name=context.name,
            )

        return InboundResult(message_id=message_id, rule_id=match.rule_id, auto_reply=reply)
