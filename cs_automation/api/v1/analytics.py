"""Analytics endpoints."""

from fastapi import APIRouter, Query

from cs_automation.api.deps import CurrentOperator, DbSession, LiveBus
from cs_automation.config import settings
from cs_automation.schemas import AnalyticsSnapshot
from cs_automation.services import AnalyticsAggregator

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("", response_model=AnalyticsSnapshot)
async def get_analytics(
    db: DbSession,
    bus: LiveBus,
    operator: CurrentOperator,
    intent: str = Query(settings.DEFAULT_INTENT, max_length=50),
):
    """Point-in-time metrics for an intent."""
    aggregator = AnalyticsAggregator(db, bus)
    return await aggregator.snapshot(operator.tenant_id, intent)
