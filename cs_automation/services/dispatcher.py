"""Outbound delivery: manual operator messages and automatic replies."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cs_automation.agents.variables import TemplateContext, resolve_template
from cs_automation.config import settings
from cs_automation.core.exceptions import InvalidMessageError, StoreUnavailableError
from cs_automation.core.telemetry import get_tracer
from cs_automation.db.repositories import ConversationMessageRepository
from cs_automation.models.conversation_message import DeliveryStatus, SenderRole
from cs_automation.schemas.conversation import DispatchResult, Participant
from cs_automation.services.live_updates import (
    LiveUpdateBus,
    conversation_scope,
    widget_scope,
)
from cs_automation.services.transports import TransportRouter

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


def validate_content(text: str | None) -> str:
    """Return trimmed message text or raise InvalidMessageError."""
    content = (text or "").strip()
    if not content:
        raise InvalidMessageError("Message content cannot be empty")
    if len(content) > settings.MAX_MESSAGE_LENGTH:
        raise InvalidMessageError(
            f"Message content exceeds {settings.MAX_MESSAGE_LENGTH} characters"
        )
    return content


class OutboundDispatcher:
    """Delivers text to a participant and records the outcome.

    A successful delivery is appended as `sent`. A failed one is appended as
    a `failed` audit record carrying the error, and reported back in the
    result rather than raised.
    """

    def __init__(
        self,
        db: AsyncSession,
        bus: LiveUpdateBus,
        transports: TransportRouter,
    ):
        self.db = db
        self.bus = bus
        self.transports = transports
        self.repo = ConversationMessageRepository(db)

    async def template_context(
        self, tenant_id: UUID, intent: str, participant: Participant
    ) -> TemplateContext:
        """Participant attributes known from the thread."""
        latest = await self.repo.latest_for_participant(
            tenant_id,
            intent,
            phone_number=participant.phone_number,
            web_session_id=participant.web_session_id,
        )
        return TemplateContext(
            name=latest.participant_name if latest else None,
            phone_number=participant.phone_number,
            session_id=participant.web_session_id,
        )

    async def deliver(
        self,
        tenant_id: UUID,
        intent: str,
        participant: Participant,
        text: str,
        *,
        sender: SenderRole,
        rule_id: UUID | None = None,
        response_time: float | None = None,
        participant_name: str | None = None,
    ) -> DispatchResult:
        """Send through the participant's transport and append the record."""
        transport = self.transports.select(participant)

        with tracer.start_as_current_span("dispatch.deliver") as span:
            span.set_attribute("dispatch.channel", transport.channel.value)
            span.set_attribute("dispatch.sender", sender.value)
            result = await transport.deliver(participant, text)
            span.set_attribute("dispatch.success", result.ok)

        status = DeliveryStatus.SENT if result.ok else DeliveryStatus.FAILED
        now = datetime.now(timezone.utc)

        try:
            message = await self.repo.append(
                tenant_id=tenant_id,
                intent=intent,
                phone_number=participant.phone_number,
                web_session_id=participant.web_session_id,
                participant_name=participant_name,
                source=transport.channel,
                sender=sender,
                content=text,
                delivery_status=status,
                rule_id=rule_id,
                response_time=response_time,
                external_id=result.external_id,
                extra_data=None if result.ok else {"error": result.error},
                # Outbound records are produced once; nothing to reconcile
                synchronized_at=now,
                created_at=now,
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Could not record {sender.value} message to {participant.key} "
                f"(delivery {status.value}): {e}"
            )
            raise StoreUnavailableError(str(e))

        if result.ok:
            logger.info(f"{sender.value} message delivered to {participant.key}")
        else:
            logger.warning(f"{sender.value} message to {participant.key} failed: {result.error}")

        await self.bus.notify(conversation_scope(tenant_id, intent), "message_appended")
        if result.ok and participant.web_session_id:
            await self.bus.notify(
                widget_scope(tenant_id, participant.web_session_id), "message_appended"
            )

        return DispatchResult(
            success=result.ok,
            delivery_status=status,
            message_id=message.id,
            content=text,
            channel=transport.channel,
            error=result.error,
        )


class ManualOverrideDispatcher(OutboundDispatcher):
    """Lets an operator write to a participant directly, bypassing rules."""

    async def send(
        self,
        tenant_id: UUID,
        intent: str,
        participant: Participant,
        text: str,
    ) -> DispatchResult:
        content = validate_content(text)

        context = await self.template_context(tenant_id, intent, participant)
        resolved = resolve_template(content, context)

        return await self.deliver(
            tenant_id,
            intent,
            participant,
            resolved,
            sender=SenderRole.AGENT,
            participant_name=context.name,
        )
