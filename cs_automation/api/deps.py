"""Common API dependencies."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from cs_automation.config import settings
from cs_automation.core.exceptions import UnauthorizedError
from cs_automation.db.session import async_session_maker
from cs_automation.services.live_updates import LiveUpdateBus
from cs_automation.services.transports import TransportRouter


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_redis() -> AsyncGenerator[Redis, None]:
    """Dependency for getting async Redis client."""
    redis = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        yield redis
    finally:
        await redis.aclose()


def get_live_update_bus(redis: Annotated[Redis, Depends(get_redis)]) -> LiveUpdateBus:
    """Dependency for the live update bus bound to the request's Redis client."""
    return LiveUpdateBus(redis)


@dataclass
class OperatorContext:
    """Identity of the calling operator.

    The tenant is always taken from the request identity, never inferred
    from message content.
    """

    tenant_id: UUID


def parse_tenant_id(value: str | None) -> UUID:
    if not value:
        raise UnauthorizedError()
    try:
        return UUID(value)
    except ValueError:
        raise UnauthorizedError()


async def get_operator_context(
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> OperatorContext:
    """Dependency resolving the operator's tenant from the X-Tenant-Id header."""
    return OperatorContext(tenant_id=parse_tenant_id(x_tenant_id))


def get_transport_router(
    operator: Annotated[OperatorContext, Depends(get_operator_context)],
    bus: Annotated[LiveUpdateBus, Depends(get_live_update_bus)],
) -> TransportRouter:
    """Dependency for the operator tenant's outbound transports."""
    return TransportRouter.for_tenant(operator.tenant_id, bus)


# Type aliases for cleaner annotations
DbSession = Annotated[AsyncSession, Depends(get_db)]
RedisClient = Annotated[Redis, Depends(get_redis)]
LiveBus = Annotated[LiveUpdateBus, Depends(get_live_update_bus)]
CurrentOperator = Annotated[OperatorContext, Depends(get_operator_context)]
Transports = Annotated[TransportRouter, Depends(get_transport_router)]
