"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cs_automation.db.base import Base
from cs_automation.models import (
    AutoReplyRule,
    ConversationMessage,
    DeliveryStatus,
    MessageSource,
    SenderRole,
)
from cs_automation.services.live_updates import LiveUpdateBus
from cs_automation.services.transports import (
    TransportRouter,
    WebWidgetTransport,
    WhatsAppTransport,
)


# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

T0 = datetime(2025, 3, 10, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    async_session_maker = sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def tenant_id() -> UUID:
    return uuid4()


@pytest.fixture
def mock_pubsub():
    """Mock Redis pub/sub connection."""
    pubsub = MagicMock()
    pubsub.subscribe = AsyncMock()
    pubsub.unsubscribe = AsyncMock()
    pubsub.aclose = AsyncMock()
    pubsub.get_message = AsyncMock(return_value=None)
    return pubsub


@pytest.fixture
def mock_redis(mock_pubsub):
    """Mock async Redis client."""
    redis = MagicMock()
    redis.publish = AsyncMock(return_value=1)
    redis.pubsub = MagicMock(return_value=mock_pubsub)
    redis.aclose = AsyncMock()
    return redis


@pytest.fixture
def bus(mock_redis) -> LiveUpdateBus:
    return LiveUpdateBus(mock_redis, prefix="live_updates")


@pytest.fixture
def mock_whatsapp_client():
    """Mock WhatsApp client for testing."""
    client = MagicMock()
    client.send_message = AsyncMock(
        return_value={"messageId": "wamid.HBgM001", "status": "sent"}
    )
    return client


@pytest.fixture
def transports(mock_whatsapp_client, bus, tenant_id) -> TransportRouter:
    return TransportRouter(
        whatsapp=WhatsAppTransport(mock_whatsapp_client),
        web=WebWidgetTransport(bus, tenant_id),
    )


@pytest.fixture
def mock_rabbitmq_connection():
    """Mock RabbitMQ connection for testing."""
    connection = AsyncMock()
    channel = AsyncMock()
    connection.channel = AsyncMock(return_value=channel)
    channel.declare_queue = AsyncMock()
    channel.default_exchange = AsyncMock()
    channel.default_exchange.publish = AsyncMock()
    return connection


@pytest.fixture
def make_message(db_session, tenant_id):
    """Factory inserting conversation messages with explicit timestamps."""

    async def _make(
        content: str = "Bonjour",
        *,
        created_at: datetime = T0,
        sender: SenderRole = SenderRole.CUSTOMER,
        phone_number: str | None = "22997000001",
        web_session_id: str | None = None,
        source: MessageSource = MessageSource.WHATSAPP,
        delivery_status: DeliveryStatus | None = None,
        intent: str = "client",
        tenant: UUID | None = None,
        synchronized: bool = False,
        **extra: Any,
    ) -> ConversationMessage:
        if web_session_id:
            phone_number = None
        if delivery_status is None:
            delivery_status = (
                DeliveryStatus.RECEIVED if sender == SenderRole.CUSTOMER else DeliveryStatus.SENT
            )
        message = ConversationMessage(
            tenant_id=tenant or tenant_id,
            intent=intent,
            phone_number=phone_number,
            web_session_id=web_session_id,
            source=source,
            sender=sender,
            content=content,
            delivery_status=delivery_status,
            synchronized_at=created_at if synchronized else None,
            created_at=created_at,
            **extra,
        )
        db_session.add(message)
        await db_session.commit()
        await db_session.refresh(message)
        return message

    return _make


@pytest.fixture
def make_rule(db_session, tenant_id):
    """Factory inserting auto-reply rules."""

    async def _make(
        trigger_words: list[str],
        response: str,
        *,
        priority: int = 0,
        is_active: bool = True,
        variables: dict | None = None,
        tenant: UUID | None = None,
        id: UUID | None = None,
    ) -> AutoReplyRule:
        rule = AutoReplyRule(
            id=id or uuid4(),
            tenant_id=tenant or tenant_id,
            trigger_words=trigger_words,
            response=response,
            priority=priority,
            is_active=is_active,
            variables=variables,
        )
        db_session.add(rule)
        await db_session.commit()
        await db_session.refresh(rule)
        return rule

    return _make


@pytest.fixture
def sample_message_data() -> dict[str, Any]:
    """Sample incoming WhatsApp message data."""
    return {
        "id": "ABCD1234567890",
        "from": "22997000001@s.whatsapp.net",
        "to": "22990000000@s.whatsapp.net",
        "body": "J'ai un problème de facture",
        "pushName": "Awa",
        "type": "text",
        "timestamp": 1741597200,
    }


@pytest.fixture
def sample_webhook_event(sample_message_data) -> dict[str, Any]:
    """Sample gateway webhook message event."""
    return {
        "event": "message",
        "data": sample_message_data,
    }
