"""Auto-reply rule endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query

from cs_automation.api.deps import CurrentOperator, DbSession
from cs_automation.schemas import (
    AutoReplyRuleCreate,
    AutoReplyRuleDetail,
    AutoReplyRuleList,
    AutoReplyRuleUpdate,
    RuleOverlapDetail,
)
from cs_automation.services import AutoReplyRuleService

router = APIRouter(prefix="/rules", tags=["rules"])


@router.get("", response_model=AutoReplyRuleList)
async def list_rules(
    db: DbSession,
    operator: CurrentOperator,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    is_active: bool | None = None,
):
    """List rules in evaluation order."""
    service = AutoReplyRuleService(db, operator.tenant_id)
    items, total = await service.list(skip=skip, limit=limit, is_active=is_active)
    return AutoReplyRuleList(items=items, total=total, skip=skip, limit=limit)


@router.post("", response_model=AutoReplyRuleDetail, status_code=201)
async def create_rule(
    data: AutoReplyRuleCreate,
    db: DbSession,
    operator: CurrentOperator,
):
    """Create a new auto-reply rule."""
    service = AutoReplyRuleService(db, operator.tenant_id)
    return await service.create(data)


@router.get("/overlaps", response_model=list[RuleOverlapDetail])
async def list_rule_overlaps(
    db: DbSession,
    operator: CurrentOperator,
):
    """Report active rules that can never win on some of their trigger words."""
    service = AutoReplyRuleService(db, operator.tenant_id)
    return await service.overlaps()


@router.get("/{rule_id}", response_model=AutoReplyRuleDetail)
async def get_rule(
    rule_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
):
    """Get rule details."""
    service = AutoReplyRuleService(db, operator.tenant_id)
    return await service.get(rule_id)


@router.patch("/{rule_id}", response_model=AutoReplyRuleDetail)
async def update_rule(
    rule_id: UUID,
    data: AutoReplyRuleUpdate,
    db: DbSession,
    operator: CurrentOperator,
):
    """Update an auto-reply rule."""
    service = AutoReplyRuleService(db, operator.tenant_id)
    return await service.update(rule_id, data)


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
):
    """Delete an auto-reply rule."""
    service = AutoReplyRuleService(db, operator.tenant_id)
    await service.delete(rule_id)
