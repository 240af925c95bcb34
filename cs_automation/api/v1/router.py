"""Main API router aggregating all v1 routes."""

from fastapi import APIRouter

from cs_automation.api.v1 import (
    analytics,
    conversations,
    live,
    rules,
    webhooks,
    widget,
)

api_router = APIRouter()

# Include all route modules
api_router.include_router(conversations.router)
api_router.include_router(rules.router)
api_router.include_router(analytics.router)
api_router.include_router(webhooks.router)
api_router.include_router(widget.router)
api_router.include_router(live.router)
