"""Auto-reply rule schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class AutoReplyRuleCreate(BaseModel):
    """Schema for creating an auto-reply rule."""

    trigger_words: list[str] = Field(..., description="Trimmed, lowercased and deduplicated on save")
    response: str = Field(..., description="Response template, may use {{variables}}")
    variables: dict[str, str] | None = None
    priority: int = 0
    is_active: bool = True


class AutoReplyRuleUpdate(BaseModel):
    """Schema for updating an auto-reply rule; omitted fields are left as is."""

    trigger_words: list[str] | None = None
    response: str | None = None
    variables: dict[str, str] | None = None
    priority: int | None = None
    is_active: bool | None = None


class AutoReplyRuleDetail(BaseModel):
    """Schema for auto-reply rule details."""

    id: UUID
    tenant_id: UUID
    trigger_words: list[str]
    response: str
    variables: dict[str, str] | None
    priority: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AutoReplyRuleList(BaseModel):
    """Schema for paginated rule list, in evaluation order."""

    items: list[AutoReplyRuleDetail]
    total: int
    skip: int
    limit: int


class RuleOverlapDetail(BaseModel):
    """A pair of active rules competing for the same trigger words."""

    winner_id: UUID
    shadowed_id: UUID
    words: list[str]
    severity: str

    class Config:
        from_attributes = True
