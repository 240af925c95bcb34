"""Outbound transports: WhatsApp gateway and the embedded web widget."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from cs_automation.core.exceptions import WhatsAppAPIError
from cs_automation.models.conversation_message import MessageSource
from cs_automation.schemas.conversation import Participant
from cs_automation.services.live_updates import LiveUpdateBus, widget_scope
from cs_automation.services.whatsapp_client import WhatsAppClient

logger = logging.getLogger(__name__)

SUCCESS = "success"
FAILURE = "failure"


@dataclass(frozen=True)
class DeliveryResult:
    """Per-item delivery outcome."""

    status: str
    error: str | None = None
    external_id: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS


class Transport(Protocol):
    channel: MessageSource

    async def deliver(self, participant: Participant, text: str) -> DeliveryResult: ...


class WhatsAppTransport:
    """Delivers text to phone numbers through the WhatsApp gateway."""

    channel = MessageSource.WHATSAPP

    def __init__(self, client: WhatsAppClient):
        self.client = client

    async def send_batch(self, items: list[tuple[str, str]]) -> list[DeliveryResult]:
        """Send each (phone, text) pair; one result per item, in order."""
        results = []
        for phone, text in items:
            try:
                response = await self.client.send_message(phone, text)
            except WhatsAppAPIError as e:
                logger.warning(f"WhatsApp delivery to {phone} failed: {e.detail}")
                results.append(DeliveryResult(status=FAILURE, error=e.detail))
                continue

            external_id = response.get("messageId") or response.get("id")
            results.append(
                DeliveryResult(
                    status=SUCCESS,
                    external_id=str(external_id) if external_id else None,
                )
            )
        return results

    async def deliver(self, participant: Participant, text: str) -> DeliveryResult:
        [result] = await self.send_batch([(participant.phone_number, text)])
        return result


class WebWidgetTransport:
    """Signals the participant's widget to re-fetch its thread."""

    channel = MessageSource.WEB

    def __init__(self, bus: LiveUpdateBus, tenant_id: UUID):
        self.bus = bus
        self.tenant_id = tenant_id

    async def deliver(self, participant: Participant, text: str) -> DeliveryResult:
        scope = widget_scope(self.tenant_id, participant.web_session_id)
        if await self.bus.notify(scope, "outbound_message"):
            return DeliveryResult(status=SUCCESS)
        return DeliveryResult(status=FAILURE, error="Web widget channel unavailable")


class TransportRouter:
    """Selects the transport by participant identity."""

    def __init__(self, whatsapp: WhatsAppTransport, web: WebWidgetTransport):
        self.whatsapp = whatsapp
        self.web = web

    @classmethod
    def for_tenant(cls, tenant_id: UUID, bus: LiveUpdateBus) -> "TransportRouter":
        return cls(
            whatsapp=WhatsAppTransport(WhatsAppClient(str(tenant_id))),
            web=WebWidgetTransport(bus, tenant_id),
        )

    def select(self, participant: Participant) -> Transport:
        # Phone number present means WhatsApp, otherwise the web widget
        if participant.phone_number:
            return self.whatsapp
        return self.web
