"""Conversation endpoints: reconciled reads, manual override and retention."""

from uuid import UUID

from fastapi import APIRouter, Query

from cs_automation.api.deps import CurrentOperator, DbSession, LiveBus, Transports
from cs_automation.config import settings
from cs_automation.core.exceptions import NotFoundError
from cs_automation.db.repositories import ConversationMessageRepository
from cs_automation.schemas import (
    ClassificationUpdate,
    ConversationList,
    ConversationMessageDetail,
    DeletionRequest,
    DeletionResult,
    DispatchResult,
    ManualMessageCreate,
    Participant,
    ThreadList,
)
from cs_automation.services import (
    ConversationSynchronizer,
    ManualOverrideDispatcher,
    RetentionController,
)

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("", response_model=ConversationList)
async def list_conversations(
    db: DbSession,
    bus: LiveBus,
    operator: CurrentOperator,
    intent: str = Query(settings.DEFAULT_INTENT, max_length=50),
    limit: int = Query(settings.CONVERSATION_LIST_LIMIT, ge=1, le=500),
):
    """List reconciled messages for an intent, most recent first."""
    synchronizer = ConversationSynchronizer(db, bus)
    return await synchronizer.read_conversations(operator.tenant_id, intent, limit)


@router.get("/threads", response_model=ThreadList)
async def list_threads(
    db: DbSession,
    bus: LiveBus,
    operator: CurrentOperator,
    intent: str = Query(settings.DEFAULT_INTENT, max_length=50),
):
    """List participant threads, most recent activity first."""
    synchronizer = ConversationSynchronizer(db, bus)
    return await synchronizer.read_threads(operator.tenant_id, intent)


@router.post("/manual", response_model=DispatchResult, status_code=201)
async def send_manual_message(
    data: ManualMessageCreate,
    db: DbSession,
    bus: LiveBus,
    transports: Transports,
    operator: CurrentOperator,
):
    """Send an operator message to a participant.

    Delivery failures are reported in the body with success=false.
    """
    dispatcher = ManualOverrideDispatcher(db, bus, transports)
    participant = Participant(
        phone_number=data.phone_number, web_session_id=data.web_session_id
    )
    return await dispatcher.send(operator.tenant_id, data.intent, participant, data.content)


@router.post("/delete", response_model=DeletionResult)
async def delete_conversations(
    data: DeletionRequest,
    db: DbSession,
    bus: LiveBus,
    operator: CurrentOperator,
):
    """Delete messages matching a selection within an intent."""
    controller = RetentionController(db, bus)
    return await controller.delete(operator.tenant_id, data.intent, data.selection)


@router.patch("/{message_id}/classification", response_model=ConversationMessageDetail)
async def classify_message(
    message_id: UUID,
    data: ClassificationUpdate,
    db: DbSession,
    operator: CurrentOperator,
):
    """Record the type/subject assigned to a message."""
    repo = ConversationMessageRepository(db)
    message = await repo.get_for_tenant(operator.tenant_id, message_id)
    if not message:
        raise NotFoundError("Message", str(message_id))

    return await repo.enrich(message, message_type=data.message_type, subject=data.subject)
