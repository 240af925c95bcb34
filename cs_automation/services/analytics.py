"""Analytics aggregation over the conversation log."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from cs_automation.config import settings
from cs_automation.core.telemetry import get_tracer
from cs_automation.db.repositories import ConversationMessageRepository
from cs_automation.models import ConversationMessage
from cs_automation.models.conversation_message import SenderRole
from cs_automation.schemas.analytics import AnalyticsSnapshot, ResponseTimeDistribution
from cs_automation.services.live_updates import LiveUpdateBus
from cs_automation.services.synchronizer import ConversationSynchronizer

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

FAST_RESPONSE_SECONDS = 2.0
SLOW_RESPONSE_SECONDS = 5.0

REPLY_ROLES = (SenderRole.BOT, SenderRole.AGENT)


def response_times(messages: Sequence[ConversationMessage]) -> list[float]:
    """Seconds between each reply and the customer message it answers.

    Messages must be in chronological order. A reply answers the most recent
    unanswered customer message in its thread; replies with nothing pending
    and customer messages never answered contribute nothing.
    """
    pending: dict[tuple[str | None, str | None], datetime] = {}
    times = []

    for message in messages:
        thread = (message.phone_number, message.web_session_id)
        if message.sender == SenderRole.CUSTOMER:
            pending[thread] = message.created_at
        elif thread in pending:
            asked_at = pending.pop(thread)
            times.append(max((message.created_at - asked_at).total_seconds(), 0.0))

    return times


def distribution(times: Sequence[float]) -> ResponseTimeDistribution:
    return ResponseTimeDistribution(
        fast=sum(1 for t in times if t < FAST_RESPONSE_SECONDS),
        medium=sum(1 for t in times if FAST_RESPONSE_SECONDS <= t <= SLOW_RESPONSE_SECONDS),
        slow=sum(1 for t in times if t > SLOW_RESPONSE_SECONDS),
    )


def build_snapshot(
    intent: str,
    messages: Sequence[ConversationMessage],
    now: datetime,
) -> AnalyticsSnapshot:
    """Aggregate chronological, non-failed messages into a snapshot."""
    roles = Counter(message.sender for message in messages)
    times = response_times(messages)

    threads: dict[tuple[str | None, str | None], list[ConversationMessage]] = {}
    for message in messages:
        threads.setdefault((message.phone_number, message.web_session_id), []).append(message)

    active_since = now - timedelta(hours=settings.ACTIVE_THREAD_WINDOW_HOURS)
    active = sum(1 for items in threads.values() if items[-1].created_at >= active_since)
    answered = sum(
        1 for items in threads.values() if any(m.sender in REPLY_ROLES for m in items)
    )
    replies = roles[SenderRole.BOT] + roles[SenderRole.AGENT]

    by_day = Counter(message.created_at.strftime("%Y-%m-%d") for message in messages)
    rule_hits = Counter(
        message.rule_id
        for message in messages
        if message.sender == SenderRole.BOT and message.rule_id is not None
    )

    return AnalyticsSnapshot(
        intent=intent,
        generated_at=now,
        total_messages=len(messages),
        customer_messages=roles[SenderRole.CUSTOMER],
        bot_messages=roles[SenderRole.BOT],
        agent_messages=roles[SenderRole.AGENT],
        mean_response_time=sum(times) / len(times) if times else 0.0,
        response_pairs=len(times),
        response_time_distribution=distribution(times),
        total_threads=len(threads),
        active_threads=active,
        whatsapp_threads=sum(1 for phone, _ in threads if phone),
        web_threads=sum(1 for phone, _ in threads if not phone),
        resolution_rate=answered / len(threads) if threads else 0.0,
        automation_rate=roles[SenderRole.BOT] / replies if replies else 0.0,
        messages_by_day=dict(sorted(by_day.items())),
        rule_hits=dict(rule_hits),
    )


class AnalyticsAggregator:
    """Computes point-in-time metrics for one tenant and intent.

    The scope is reconciled first so duplicate deliveries are not counted.
    When that fails, only synchronized messages are counted and the
    snapshot is flagged stale.
    """

    def __init__(self, db: AsyncSession, bus: LiveUpdateBus | None = None):
        self.repo = ConversationMessageRepository(db)
        self.synchronizer = ConversationSynchronizer(db, bus)

    async def snapshot(
        self,
        tenant_id: UUID,
        intent: str,
        now: datetime | None = None,
    ) -> AnalyticsSnapshot:
        now = now or datetime.now(timezone.utc)
        with tracer.start_as_current_span("analytics.snapshot") as span:
            span.set_attribute("analytics.intent", intent)
            sync_error = await self.synchronizer.try_reconcile(tenant_id, intent)
            messages = await self.repo.list_scope_chronological(tenant_id, intent)
            if sync_error is not None:
                messages = [m for m in messages if m.synchronized_at is not None]
            span.set_attribute("analytics.messages", len(messages))
            snapshot = build_snapshot(intent, messages, now)
            snapshot.stale = sync_error is not None
            snapshot.sync_error = sync_error

        logger.debug(
            f"Analytics for {tenant_id}/{intent}: {snapshot.total_messages} messages, "
            f"{snapshot.response_pairs} response pairs"
        )
        return snapshot
