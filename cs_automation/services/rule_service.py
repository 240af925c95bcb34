"""Auto-reply rule management."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from cs_automation.agents.rule_based import (
    RuleOverlap,
    find_rule_overlaps,
    normalize_trigger_words,
)
from cs_automation.core.exceptions import InvalidRuleError, NotFoundError
from cs_automation.db.repositories import AutoReplyRuleRepository
from cs_automation.models import AutoReplyRule
from cs_automation.schemas.auto_reply_rule import AutoReplyRuleCreate, AutoReplyRuleUpdate

logger = logging.getLogger(__name__)


def _validated_triggers(words: list[str]) -> list[str]:
    normalized = normalize_trigger_words(words)
    if not normalized:
        raise InvalidRuleError("At least one trigger word is required")
    return normalized


def _validated_response(response: str) -> str:
    if not response or not response.strip():
        raise InvalidRuleError("Response cannot be empty")
    return response


class AutoReplyRuleService:
    """Tenant-scoped CRUD for auto-reply rules.

    Invalid rules are rejected before anything is written.
    """

    def __init__(self, db: AsyncSession, tenant_id: UUID):
        self.db = db
        self.tenant_id = tenant_id
        self.repo = AutoReplyRuleRepository(db)

    async def list(
        self, skip: int = 0, limit: int = 50, is_active: bool | None = None
    ) -> tuple[list[AutoReplyRule], int]:
        return await self.repo.list(
            tenant_id=self.tenant_id, skip=skip, limit=limit, is_active=is_active
        )

    async def get(self, rule_id: UUID) -> AutoReplyRule:
        rule = await self.repo.get_for_tenant(self.tenant_id, rule_id)
        if not rule:
            raise NotFoundError("Rule", str(rule_id))
        return rule

    async def create(self, data: AutoReplyRuleCreate) -> AutoReplyRule:
        rule = await self.repo.create(
            tenant_id=self.tenant_id,
            trigger_words=_validated_triggers(data.trigger_words),
            response=_validated_response(data.response),
            variables=data.variables,
            priority=data.priority,
            is_active=data.is_active,
        )
        logger.info(f"Created rule {rule.id} for tenant {self.tenant_id}")
        return rule

    async def update(self, rule_id: UUID, data: AutoReplyRuleUpdate) -> AutoReplyRule:
        rule = await self.get(rule_id)

        changes = data.model_dump(exclude_unset=True)
        if "trigger_words" in changes:
            changes["trigger_words"] = _validated_triggers(changes["trigger_words"] or [])
        if "response" in changes:
            changes["response"] = _validated_response(changes["response"])
        for field in ("priority", "is_active"):
            if field in changes and changes[field] is None:
                raise InvalidRuleError(f"'{field}' cannot be null")

        rule = await self.repo.update(rule, **changes)
        logger.info(f"Updated rule {rule.id} for tenant {self.tenant_id}")
        return rule

    async def delete(self, rule_id: UUID) -> None:
        rule = await self.get(rule_id)
        await self.repo.delete(rule)
        logger.info(f"Deleted rule {rule_id} for tenant {self.tenant_id}")

    async def active_rules(self) -> list[AutoReplyRule]:
        return await self.repo.get_active_for_tenant(self.tenant_id)

    async def overlaps(self) -> list[RuleOverlap]:
        """Active rules whose trigger words are shadowed by a higher-ordered rule."""
        return find_rule_overlaps(await self.active_rules())
