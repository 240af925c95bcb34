"""Webhook endpoints for receiving WhatsApp events."""

import logging
from uuid import UUID

from aio_pika.exceptions import AMQPException
from fastapi import APIRouter, Query

from cs_automation.api.deps import DbSession, LiveBus
from cs_automation.schemas import WebhookPayload
from cs_automation.services import InboundProcessor, publish_inbound_message
from cs_automation.services.inbound import inbound_from_whatsapp

router = APIRouter(prefix="/webhooks", tags=["webhooks"])
logger = logging.getLogger(__name__)


@router.post("/whatsapp/{tenant_id}")
async def whatsapp_webhook(
    tenant_id: UUID,
    payload: WebhookPayload,
    db: DbSession,
    bus: LiveBus,
    intent: str | None = Query(None, max_length=50),
):
    """Receive webhooks from the WhatsApp gateway.

    Only "message" events are handled; customer messages are queued for the
    consumer worker. If the queue is unreachable the message is processed
    inline so it is never dropped.
    """
    if payload.event != "message":
        return {"status": "ignored", "reason": "unsupported_event", "event": payload.event}

    inbound = inbound_from_whatsapp(payload.data, intent)
    if inbound is None:
        return {"status": "ignored", "reason": "not_a_customer_message"}

    try:
        await publish_inbound_message(tenant_id, inbound.model_dump(mode="json"))
        logger.debug(f"Message queued for tenant {tenant_id}")
        return {"status": "queued", "event": payload.event}
    except (AMQPException, OSError) as e:
        logger.error(f"Failed to queue message, processing inline: {e}")

    processor = InboundProcessor(db, bus)
    result = await processor.handle(tenant_id, inbound)
    return {"status": "processed", "event": payload.event, "result": result.model_dump(mode="json")}
