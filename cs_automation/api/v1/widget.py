"""Public endpoints used by the embedded web chat widget."""

from uuid import UUID

from fastapi import APIRouter, Query

from cs_automation.api.deps import DbSession, LiveBus
from cs_automation.config import settings
from cs_automation.models.conversation_message import MessageSource
from cs_automation.schemas import (
    ConversationMessageDetail,
    InboundMessage,
    InboundResult,
    Participant,
    WidgetMessageCreate,
)
from cs_automation.services import ConversationSynchronizer, InboundProcessor

router = APIRouter(prefix="/widget", tags=["widget"])


@router.post("/{tenant_id}/messages", response_model=InboundResult, status_code=201)
async def post_widget_message(
    tenant_id: UUID,
    data: WidgetMessageCreate,
    db: DbSession,
    bus: LiveBus,
):
    """Accept a visitor message and answer it from the tenant's rules."""
    inbound = InboundMessage(
        web_session_id=data.session_id,
        content=data.content,
        source=MessageSource.WEB,
        intent=data.intent,
        participant_name=data.participant_name,
        extra_data=data.extra_data,
    )
    processor = InboundProcessor(db, bus)
    return await processor.handle(tenant_id, inbound)


@router.get("/{tenant_id}/messages/{session_id}", response_model=list[ConversationMessageDetail])
async def get_widget_messages(
    tenant_id: UUID,
    session_id: str,
    db: DbSession,
    bus: LiveBus,
    intent: str = Query(settings.DEFAULT_INTENT, max_length=50),
    limit: int = Query(50, ge=1, le=200),
):
    """The visitor's thread, oldest first."""
    synchronizer = ConversationSynchronizer(db, bus)
    return await synchronizer.read_thread(
        tenant_id, intent, Participant(web_session_id=session_id), limit=limit
    )
