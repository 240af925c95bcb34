"""Core module for exceptions and telemetry."""

from cs_automation.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    InvalidMessageError,
    InvalidRuleError,
    NotFoundError,
    StoreUnavailableError,
    UnauthorizedError,
    WhatsAppAPIError,
)
from cs_automation.core.telemetry import get_tracer, setup_telemetry, setup_worker_telemetry

__all__ = [
    "BadRequestError",
    "ForbiddenError",
    "InvalidMessageError",
    "InvalidRuleError",
    "NotFoundError",
    "StoreUnavailableError",
    "UnauthorizedError",
    "WhatsAppAPIError",
    "get_tracer",
    "setup_telemetry",
    "setup_worker_telemetry",
]
