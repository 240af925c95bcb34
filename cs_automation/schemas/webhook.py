"""Webhook schemas."""

from typing import Any

from pydantic import BaseModel


class WebhookPayload(BaseModel):
    """Schema for WhatsApp gateway webhook payload."""

    event: str
    data: dict[str, Any]
