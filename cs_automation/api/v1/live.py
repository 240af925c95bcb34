"""WebSocket endpoints streaming live update invalidations."""

import asyncio
import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Header, Query, WebSocket, WebSocketDisconnect, status
from fastapi.websockets import WebSocketState
from redis.exceptions import RedisError

from cs_automation.api.deps import LiveBus, parse_tenant_id
from cs_automation.core.exceptions import UnauthorizedError
from cs_automation.services import LiveUpdateBus, conversation_scope, widget_scope
from cs_automation.services.live_updates import LiveUpdateSubscription

router = APIRouter(prefix="/live", tags=["live"])
logger = logging.getLogger(__name__)


async def _close(websocket: WebSocket, code: int) -> None:
    if (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    ):
        await websocket.close(code=code)


async def _forward_until_closed(
    websocket: WebSocket, subscription: LiveUpdateSubscription, scope: str
) -> BaseException | None:
    """Run until the client leaves or the subscription stops.

    Returns the subscription's error, if any.
    """

    async def forward() -> None:
        async for event in subscription:
            await websocket.send_json(event.model_dump(mode="json"))

    async def drain() -> None:
        # Client messages are ignored; reading detects the disconnect
        while True:
            await websocket.receive_text()

    forwarder = asyncio.create_task(forward())
    receiver = asyncio.create_task(drain())
    done, pending = await asyncio.wait(
        {forwarder, receiver}, return_when=asyncio.FIRST_COMPLETED
    )
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)

    if receiver in done:
        error = receiver.exception()
        if error is not None and not isinstance(error, WebSocketDisconnect):
            logger.warning(f"Live client for {scope} dropped: {error}")
        else:
            logger.debug(f"Live client for {scope} disconnected")
        return None

    error = forwarder.exception()
    if error is None:
        logger.info(f"Live subscription for {scope} ended")
        await _close(websocket, status.WS_1000_NORMAL_CLOSURE)
    return error


async def stream_scope(websocket: WebSocket, bus: LiveUpdateBus, scope: str) -> None:
    """Forward events for one scope until either side goes away.

    A failed subscription closes the socket with 1011 so the client
    reconnects instead of waiting on a dead stream.
    """
    await websocket.accept()

    try:
        async with bus.subscribe(scope) as subscription:
            error = await _forward_until_closed(websocket, subscription, scope)
    except RedisError as e:
        error = e

    if error is not None:
        logger.error(f"Live stream for {scope} failed: {error}")
        await _close(websocket, status.WS_1011_INTERNAL_ERROR)


@router.websocket("/widget/{tenant_id}/{session_id}")
async def widget_updates(
    websocket: WebSocket,
    tenant_id: UUID,
    session_id: str,
    bus: LiveBus,
):
    """Invalidations for one widget session's thread."""
    await stream_scope(websocket, bus, widget_scope(tenant_id, session_id))


@router.websocket("/{intent}")
async def conversation_updates(
    websocket: WebSocket,
    intent: str,
    bus: LiveBus,
    x_tenant_id: Annotated[str | None, Header()] = None,
    tenant_id: str | None = Query(None, description="For clients that cannot set headers"),
):
    """Invalidations for the operator's conversations in an intent."""
    try:
        tenant = parse_tenant_id(x_tenant_id or tenant_id)
    except UnauthorizedError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await stream_scope(websocket, bus, conversation_scope(tenant, intent))
