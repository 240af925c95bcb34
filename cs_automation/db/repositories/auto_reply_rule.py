"""Auto-reply rule repository."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cs_automation.db.repositories.base import BaseRepository
from cs_automation.models import AutoReplyRule


class AutoReplyRuleRepository(BaseRepository[AutoReplyRule]):
    """Repository for auto-reply rule operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, AutoReplyRule)

    async def list(
        self,
        *,
        tenant_id: UUID,
        skip: int = 0,
        limit: int = 50,
        is_active: bool | None = None,
    ) -> tuple[list[AutoReplyRule], int]:
        """List rules for a tenant in evaluation order."""
        base_query = select(AutoReplyRule).where(AutoReplyRule.tenant_id == tenant_id)

        if is_active is not None:
            base_query = base_query.where(AutoReplyRule.is_active == is_active)

        count_stmt = select(func.count()).select_from(base_query.subquery())
        total_result = await self.session.execute(count_stmt)
        total = total_result.scalar() or 0

        stmt = (
            base_query.order_by(AutoReplyRule.priority.desc(), AutoReplyRule.id.asc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        items = list(result.scalars().all())

        return items, total

    async def get_active_for_tenant(self, tenant_id: UUID) -> list[AutoReplyRule]:
        """Get active rules ordered by priority (highest first), id as tie-break."""
        stmt = (
            select(AutoReplyRule)
            .where(
                AutoReplyRule.tenant_id == tenant_id,
                AutoReplyRule.is_active.is_(True),
            )
            .order_by(AutoReplyRule.priority.desc(), AutoReplyRule.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
