"""Conversation synchronizer: duplicate reconciliation and thread reads."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cs_automation.config import settings
from cs_automation.core.exceptions import StoreUnavailableError
from cs_automation.core.telemetry import get_tracer
from cs_automation.db.repositories import ConversationMessageRepository
from cs_automation.models import ConversationMessage
from cs_automation.models.conversation_message import (
    DeliveryStatus,
    MessageSource,
    SenderRole,
)
from cs_automation.schemas.conversation import (
    ConversationList,
    Participant,
    ThreadDetail,
    ThreadList,
)
from cs_automation.services.live_updates import LiveUpdateBus, conversation_scope

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


@dataclass
class ReconciliationReport:
    """What one reconciliation pass did."""

    examined: int = 0
    duplicates_removed: int = 0
    synchronized: int = 0
    removed_ids: frozenset[UUID] = frozenset()


def find_duplicates(
    thread: Sequence[ConversationMessage],
    pending_ids: set[UUID],
    tolerance: timedelta,
) -> list[ConversationMessage]:
    """Return the pending messages that copy a kept one.

    `thread` must be in (created_at, id) order. Synchronized messages are
    always kept and never compared with each other. Pending messages are
    then taken earliest first: one is a duplicate when a kept message has
    the same sender and content within `tolerance`, or the same sender and
    gateway `external_id`. Failed delivery records take no part.
    """
    kept: dict[tuple[SenderRole, str], list[ConversationMessage]] = defaultdict(list)
    kept_external: set[tuple[SenderRole, str]] = set()
    duplicates = []

    settled = [m for m in thread if m.id not in pending_ids]
    pending = [m for m in thread if m.id in pending_ids]

    for message in settled + pending:
        if message.delivery_status == DeliveryStatus.FAILED:
            continue
        key = (message.sender, message.content.strip())
        external = (message.sender, message.external_id) if message.external_id else None

        if message.id in pending_ids and (
            (external is not None and external in kept_external)
            or any(
                abs(message.created_at - candidate.created_at) <= tolerance
                for candidate in kept[key]
            )
        ):
            duplicates.append(message)
            continue

        kept[key].append(message)
        if external is not None:
            kept_external.add(external)

    return duplicates


def thread_status(last_activity: datetime, now: datetime) -> str:
    """active within the hour, recent within a day, otherwise inactive."""
    idle = now - last_activity
    if idle < timedelta(hours=1):
        return "active"
    if idle < timedelta(hours=24):
        return "recent"
    return "inactive"


def build_threads(
    messages: Sequence[ConversationMessage], now: datetime | None = None
) -> list[ThreadDetail]:
    """Group chronological messages into threads, most recent activity first."""
    now = now or datetime.now(timezone.utc)
    grouped: dict[tuple[str | None, str | None], list[ConversationMessage]] = {}
    for message in messages:
        grouped.setdefault((message.phone_number, message.web_session_id), []).append(message)

    threads = []
    for (phone_number, web_session_id), items in grouped.items():
        senders = [m.sender for m in items]
        last_activity = items[-1].created_at
        name = next(
            (m.participant_name for m in reversed(items) if m.participant_name), None
        )
        threads.append(
            ThreadDetail(
                participant_key=phone_number or web_session_id,
                channel=MessageSource.WHATSAPP if phone_number else MessageSource.WEB,
                participant_name=name,
                phone_number=phone_number,
                web_session_id=web_session_id,
                messages=items,
                message_count=len(items),
                customer_message_count=senders.count(SenderRole.CUSTOMER),
                bot_message_count=senders.count(SenderRole.BOT),
                agent_message_count=senders.count(SenderRole.AGENT),
                first_message_at=items[0].created_at,
                last_activity_at=last_activity,
                status=thread_status(last_activity, now),
            )
        )

    threads.sort(key=lambda thread: thread.last_activity_at, reverse=True)
    return threads


class ConversationSynchronizer:
    """Merges duplicate deliveries and serves reconciled conversation reads.

    The same customer event can reach the store twice, once per transport
    or through a redelivery. Reconciliation keeps the copy already
    synchronized, otherwise the earliest one. It deletes the rest and stamps
    the survivors as synchronized so later passes skip them.
    """

    def __init__(
        self,
        db: AsyncSession,
        bus: LiveUpdateBus | None = None,
        tolerance: timedelta | None = None,
    ):
        self.db = db
        self.bus = bus
        self.repo = ConversationMessageRepository(db)
        self.tolerance = tolerance or timedelta(seconds=settings.DEDUP_TOLERANCE_SECONDS)

    async def reconcile(
        self,
        tenant_id: UUID,
        intent: str,
        participant: Participant | None = None,
    ) -> ReconciliationReport:
        """Run one reconciliation pass over the scope or a single participant."""
        with tracer.start_as_current_span("conversations.reconcile") as span:
            span.set_attribute("conversations.intent", intent)
            try:
                report = await self._reconcile(tenant_id, intent, participant)
            except SQLAlchemyError:
                await self.db.rollback()
                raise
            span.set_attribute("conversations.duplicates_removed", report.duplicates_removed)

        if report.duplicates_removed and self.bus is not None:
            await self.bus.notify(conversation_scope(tenant_id, intent), "reconciled")
        return report

    async def _reconcile(
        self,
        tenant_id: UUID,
        intent: str,
        participant: Participant | None,
    ) -> ReconciliationReport:
        pending = await self.repo.list_unsynchronized(
            tenant_id,
            intent,
            phone_number=participant.phone_number if participant else None,
            web_session_id=participant.web_session_id if participant else None,
        )
        if not pending:
            return ReconciliationReport()

        pending_ids = {message.id for message in pending}
        identities = list(dict.fromkeys((m.phone_number, m.web_session_id) for m in pending))

        duplicates: list[ConversationMessage] = []
        for phone_number, web_session_id in identities:
            thread = await self.repo.list_thread(
                tenant_id,
                intent,
                phone_number=phone_number,
                web_session_id=web_session_id,
            )
            duplicates.extend(find_duplicates(thread, pending_ids, self.tolerance))

        removed_ids = frozenset(message.id for message in duplicates)
        removed = await self.repo.delete_by_ids(
            removed_ids, tenant_id=tenant_id, intent=intent, commit=False
        )
        synchronized = await self.repo.mark_synchronized(
            (message.id for message in pending if message.id not in removed_ids),
            datetime.now(timezone.utc),
            commit=False,
        )
        await self.db.commit()

        if removed:
            logger.info(f"Removed {removed} duplicate messages in {tenant_id}/{intent}")
        return ReconciliationReport(
            examined=len(pending),
            duplicates_removed=removed,
            synchronized=synchronized,
            removed_ids=removed_ids,
        )

    async def try_reconcile(self, tenant_id: UUID, intent: str) -> str | None:
        """Reconcile the scope; returns the error text instead of raising."""
        try:
            await self.reconcile(tenant_id, intent)
        except SQLAlchemyError as e:
            logger.warning(f"Reconciliation failed for {tenant_id}/{intent}: {e}")
            return str(e)
        return None

    async def read_conversations(
        self, tenant_id: UUID, intent: str, limit: int | None = None
    ) -> ConversationList:
        """Reconciled messages, most recent first.

        When reconciliation fails the last synchronized state is returned
        and flagged stale.
        """
        limit = limit or settings.CONVERSATION_LIST_LIMIT
        sync_error = await self.try_reconcile(tenant_id, intent)

        try:
            items, total = await self.repo.list(
                tenant_id=tenant_id,
                intent=intent,
                limit=limit,
                synchronized_only=sync_error is not None,
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Conversation listing failed for {tenant_id}/{intent}: {e}")
            raise StoreUnavailableError(str(e))

        return ConversationList(
            items=items,
            total=total,
            limit=limit,
            stale=sync_error is not None,
            sync_error=sync_error,
        )

    async def read_threads(
        self, tenant_id: UUID, intent: str, now: datetime | None = None
    ) -> ThreadList:
        """Every thread in scope, materialized from the message log."""
        sync_error = await self.try_reconcile(tenant_id, intent)

        try:
            messages = await self.repo.list_scope_chronological(
                tenant_id, intent, include_failed=True
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Thread listing failed for {tenant_id}/{intent}: {e}")
            raise StoreUnavailableError(str(e))

        if sync_error is not None:
            messages = [m for m in messages if m.synchronized_at is not None]

        threads = build_threads(messages, now)
        return ThreadList(
            items=threads,
            total=len(threads),
            stale=sync_error is not None,
            sync_error=sync_error,
        )

    async def read_thread(
        self,
        tenant_id: UUID,
        intent: str,
        participant: Participant,
        limit: int | None = None,
    ) -> list[ConversationMessage]:
        """One participant's reconciled thread, oldest first."""
        try:
            await self.reconcile(tenant_id, intent, participant)
        except SQLAlchemyError as e:
            logger.warning(f"Reconciliation failed for {participant.key}: {e}")

        return await self.repo.list_thread(
            tenant_id,
            intent,
            phone_number=participant.phone_number,
            web_session_id=participant.web_session_id,
            limit=limit,
        )
