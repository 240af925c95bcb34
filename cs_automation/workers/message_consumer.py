"""RabbitMQ consumer worker for inbound customer messages."""

import asyncio
import json
import logging
from uuid import UUID

import aio_pika
from redis.asyncio import Redis

from cs_automation.config import settings
from cs_automation.core.telemetry import setup_worker_telemetry
from cs_automation.db.session import async_session_maker
from cs_automation.schemas import InboundMessage
from cs_automation.services import InboundProcessor, LiveUpdateBus

logger = logging.getLogger(__name__)


async def process_message(message: aio_pika.IncomingMessage, redis: Redis) -> None:
    """Process a single message from the queue."""
    async with message.process():
        try:
            data = json.loads(message.body.decode())
            tenant_id = UUID(data["tenant_id"])
            inbound = InboundMessage.model_validate(data["message"])

            logger.info(f"Processing message for tenant {tenant_id}")

            async with async_session_maker() as db:
                processor = InboundProcessor(db, LiveUpdateBus(redis))
                result = await processor.handle(tenant_id, inbound)

            if result.duplicate:
                logger.debug(f"Duplicate message for tenant {tenant_id} skipped")
            elif result.auto_reply and not result.auto_reply.success:
                logger.warning(
                    f"Auto-reply for tenant {tenant_id} failed: {result.auto_reply.error}"
                )

        except Exception as e:
            logger.error(f"Error processing message: {e}")
            raise


async def main() -> None:
    """Main consumer loop."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting message consumer worker...")
    setup_worker_telemetry()

    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    connection = await aio_pika.connect_robust(settings.RABBITMQ_URL)

    try:
        async with connection:
            channel = await connection.channel()
            await channel.set_qos(prefetch_count=10)

            queue = await channel.declare_queue(settings.INCOMING_QUEUE, durable=True)

            logger.info(f"Listening for messages on '{settings.INCOMING_QUEUE}' queue...")
            await queue.consume(lambda message: process_message(message, redis))

            # Run forever
            await asyncio.Future()
    finally:
        await redis.aclose()


if __name__ == "__main__":
    asyncio.run(main())
