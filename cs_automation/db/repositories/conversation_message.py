"""Conversation message repository."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cs_automation.core.exceptions import InvalidMessageError
from cs_automation.db.repositories.base import BaseRepository
from cs_automation.models import ConversationMessage
from cs_automation.models.conversation_message import DeliveryStatus


class ConversationMessageRepository(BaseRepository[ConversationMessage]):
    """Repository for the append-only conversation log.

    Every query is scoped by tenant and intent. Thread order is
    (created_at, id) ascending.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, ConversationMessage)

    def _scope(self, tenant_id: UUID, intent: str):
        return select(ConversationMessage).where(
            ConversationMessage.tenant_id == tenant_id,
            ConversationMessage.intent == intent,
        )

    @staticmethod
    def _participant_filter(stmt, phone_number: str | None, web_session_id: str | None):
        if phone_number:
            return stmt.where(ConversationMessage.phone_number == phone_number)
        return stmt.where(ConversationMessage.web_session_id == web_session_id)

    async def append(self, **kwargs) -> ConversationMessage:
        """Append a message, enforcing the single-participant invariant."""
        phone_number = kwargs.get("phone_number")
        web_session_id = kwargs.get("web_session_id")
        if bool(phone_number) == bool(web_session_id):
            raise InvalidMessageError(
                "Exactly one of phone_number or web_session_id must be set"
            )
        return await self.create(**kwargs)

    async def exists(self, message_id: UUID) -> bool:
        """Check the store, not the session, for a message id."""
        stmt = select(ConversationMessage.id).where(ConversationMessage.id == message_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def list(
        self,
        *,
        tenant_id: UUID,
        intent: str,
        skip: int = 0,
        limit: int = 100,
        synchronized_only: bool = False,
        after: datetime | None = None,
    ) -> tuple[list[ConversationMessage], int]:
        """List messages in scope, most recent first."""
        base_query = self._scope(tenant_id, intent)

        if synchronized_only:
            base_query = base_query.where(ConversationMessage.synchronized_at.is_not(None))

        if after:
            base_query = base_query.where(ConversationMessage.created_at >= after)

        count_stmt = select(func.count()).select_from(base_query.subquery())
        total_result = await self.session.execute(count_stmt)
        total = total_result.scalar() or 0

        stmt = (
            base_query.order_by(
                ConversationMessage.created_at.desc(), ConversationMessage.id.desc()
            )
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        items = list(result.scalars().all())

        return items, total

    async def list_scope_chronological(
        self,
        tenant_id: UUID,
        intent: str,
        *,
        include_failed: bool = False,
        after: datetime | None = None,
    ) -> list[ConversationMessage]:
        """Every message in scope, oldest first."""
        stmt = self._scope(tenant_id, intent)
        if not include_failed:
            stmt = stmt.where(ConversationMessage.delivery_status != DeliveryStatus.FAILED)
        if after:
            stmt = stmt.where(ConversationMessage.created_at >= after)
        stmt = stmt.order_by(ConversationMessage.created_at.asc(), ConversationMessage.id.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_thread(
        self,
        tenant_id: UUID,
        intent: str,
        *,
        phone_number: str | None = None,
        web_session_id: str | None = None,
        limit: int | None = None,
    ) -> list[ConversationMessage]:
        """Messages of one participant's thread, oldest first.

        With a limit, the most recent `limit` messages are returned, still
        oldest first.
        """
        stmt = self._participant_filter(
            self._scope(tenant_id, intent), phone_number, web_session_id
        )
        if limit is not None:
            stmt = stmt.order_by(
                ConversationMessage.created_at.desc(), ConversationMessage.id.desc()
            ).limit(limit)
            result = await self.session.execute(stmt)
            return list(reversed(result.scalars().all()))

        stmt = stmt.order_by(ConversationMessage.created_at.asc(), ConversationMessage.id.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def latest_for_participant(
        self,
        tenant_id: UUID,
        intent: str,
        *,
        phone_number: str | None = None,
        web_session_id: str | None = None,
    ) -> ConversationMessage | None:
        """Most recent message in a participant's thread."""
        stmt = self._participant_filter(
            self._scope(tenant_id, intent), phone_number, web_session_id
        )
        stmt = stmt.order_by(
            ConversationMessage.created_at.desc(), ConversationMessage.id.desc()
        ).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_unsynchronized(
        self,
        tenant_id: UUID,
        intent: str,
        *,
        phone_number: str | None = None,
        web_session_id: str | None = None,
    ) -> list[ConversationMessage]:
        """Messages lacking the synchronization marker, oldest first."""
        stmt = self._scope(tenant_id, intent).where(
            ConversationMessage.synchronized_at.is_(None)
        )
        if phone_number or web_session_id:
            stmt = self._participant_filter(stmt, phone_number, web_session_id)
        stmt = stmt.order_by(ConversationMessage.created_at.asc(), ConversationMessage.id.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def mark_synchronized(
        self, message_ids: Iterable[UUID], at: datetime, *, commit: bool = True
    ) -> int:
        """Set the synchronization marker on the given messages."""
        ids = list(message_ids)
        if not ids:
            return 0
        stmt = (
            update(ConversationMessage)
            .where(ConversationMessage.id.in_(ids))
            .values(synchronized_at=at)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        if commit:
            await self.session.commit()
        return result.rowcount or 0

    async def delete_by_ids(
        self,
        message_ids: Iterable[UUID],
        *,
        tenant_id: UUID,
        intent: str,
        commit: bool = True,
    ) -> int:
        """Delete the given messages within scope; returns rows removed."""
        ids = list(message_ids)
        if not ids:
            return 0
        stmt = (
            delete(ConversationMessage)
            .where(
                ConversationMessage.id.in_(ids),
                ConversationMessage.tenant_id == tenant_id,
                ConversationMessage.intent == intent,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if commit:
            await self.session.commit()
        return result.rowcount or 0

    async def delete_in_range(
        self,
        *,
        tenant_id: UUID,
        intent: str,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> int:
        """Delete messages with since <= created_at <= until (open bounds when None)."""
        stmt = delete(ConversationMessage).where(
            ConversationMessage.tenant_id == tenant_id,
            ConversationMessage.intent == intent,
        )
        if since is not None:
            stmt = stmt.where(ConversationMessage.created_at >= since)
        if until is not None:
            stmt = stmt.where(ConversationMessage.created_at <= until)
        result = await self.session.execute(
            stmt.execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount or 0

    async def enrich(
        self,
        message: ConversationMessage,
        *,
        message_type: str | None = None,
        subject: str | None = None,
    ) -> ConversationMessage:
        """Write classification fields, the only mutable part of a message."""
        changes = {}
        if message_type is not None:
            changes["message_type"] = message_type
        if subject is not None:
            changes["subject"] = subject
        return await self.update(message, **changes)
