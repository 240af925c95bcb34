"""Message queue service for RabbitMQ."""

import json
import logging
from uuid import UUID

import aio_pika

from cs_automation.config import settings

logger = logging.getLogger(__name__)


async def publish_inbound_message(tenant_id: UUID, message_data: dict) -> None:
    """Publish an inbound customer message to the queue for async processing."""
    connection = await aio_pika.connect_robust(settings.RABBITMQ_URL)
    async with connection:
        channel = await connection.channel()
        await channel.declare_queue(settings.INCOMING_QUEUE, durable=True)

        payload = {
            "tenant_id": str(tenant_id),
            "message": message_data,
        }

        await channel.default_exchange.publish(
            aio_pika.Message(
                body=json.dumps(payload, default=str).encode(),
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            ),
            routing_key=settings.INCOMING_QUEUE,
        )
        logger.debug(f"Message published to queue for tenant {tenant_id}")
