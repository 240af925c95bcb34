"""Analytics schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class ResponseTimeDistribution(BaseModel):
    """Reply latency buckets: fast < 2s, medium 2-5s, slow > 5s."""

    fast: int = 0
    medium: int = 0
    slow: int = 0


class AnalyticsSnapshot(BaseModel):
    """Operational metrics for one tenant and intent at a point in time."""

    intent: str
    generated_at: datetime

    total_messages: int = 0
    customer_messages: int = 0
    bot_messages: int = 0
    agent_messages: int = 0

    mean_response_time: float = Field(0.0, description="Seconds; 0.0 when nothing was answered")
    response_pairs: int = 0
    response_time_distribution: ResponseTimeDistribution = Field(
        default_factory=ResponseTimeDistribution
    )

    total_threads: int = 0
    active_threads: int = 0
    whatsapp_threads: int = 0
    web_threads: int = 0
    resolution_rate: float = Field(0.0, ge=0.0, le=1.0)
    automation_rate: float = Field(0.0, ge=0.0, le=1.0)

    messages_by_day: dict[str, int] = Field(default_factory=dict)
    rule_hits: dict[UUID, int] = Field(default_factory=dict)

    stale: bool = False
    sync_error: str | None = None
