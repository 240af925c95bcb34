"""Retention controller: scoped bulk deletion of conversation messages."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cs_automation.db.repositories import ConversationMessageRepository
from cs_automation.schemas.deletion import (
    CutoffSelection,
    DeletionResult,
    DeletionSelection,
    IdSelection,
    TimeframeSelection,
)
from cs_automation.services.live_updates import LiveUpdateBus, conversation_scope

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RetentionController:
    """Deletes messages within one tenant and intent.

    Every outcome is returned as a DeletionResult. Store errors are rolled
    back and reported with success=False.
    """

    def __init__(
        self,
        db: AsyncSession,
        bus: LiveUpdateBus | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.bus = bus
        self.clock = clock
        self.repo = ConversationMessageRepository(db)

    async def delete(
        self,
        tenant_id: UUID,
        intent: str,
        selection: DeletionSelection,
    ) -> DeletionResult:
        try:
            deleted = await self._delete(tenant_id, intent, selection)
        except ValueError as e:
            return DeletionResult(success=False, error=str(e))
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Deletion failed for {tenant_id}/{intent}: {e}")
            return DeletionResult(success=False, error=f"Store error: {e}")

        logger.info(f"Deleted {deleted} messages in {tenant_id}/{intent}")
        if self.bus is not None:
            await self.bus.notify(conversation_scope(tenant_id, intent), "deleted")
        return DeletionResult(success=True, deleted_count=deleted)

    async def _delete(
        self,
        tenant_id: UUID,
        intent: str,
        selection: DeletionSelection,
    ) -> int:
        if isinstance(selection, IdSelection):
            ids = list(dict.fromkeys(selection.ids))
            if not ids:
                raise ValueError("No message ids selected")
            return await self.repo.delete_by_ids(ids, tenant_id=tenant_id, intent=intent)

        if isinstance(selection, TimeframeSelection):
            window = selection.timeframe.window
            if window is None:
                return await self.repo.delete_in_range(tenant_id=tenant_id, intent=intent)
            now = self.clock()
            return await self.repo.delete_in_range(
                tenant_id=tenant_id, intent=intent, since=now - window, until=now
            )

        if isinstance(selection, CutoffSelection):
            since, until = _as_utc(selection.since), _as_utc(selection.until)
            if until is not None and until < since:
                raise ValueError("Cutoff 'until' must not precede 'since'")
            return await self.repo.delete_in_range(
                tenant_id=tenant_id, intent=intent, since=since, until=until
            )

        raise ValueError("A deletion selection is required")
