"""Deletion selection and result schemas."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import UUID

from pydantic import BaseModel, Field

from cs_automation.config import settings


class Timeframe(str, Enum):
    """Relative windows an operator can purge."""

    LAST_HOUR = "1h"
    LAST_24_HOURS = "24h"
    LAST_7_DAYS = "7d"
    ALL = "all"

    @property
    def window(self) -> timedelta | None:
        return {
            Timeframe.LAST_HOUR: timedelta(hours=1),
            Timeframe.LAST_24_HOURS: timedelta(hours=24),
            Timeframe.LAST_7_DAYS: timedelta(days=7),
            Timeframe.ALL: None,
        }[self]


class IdSelection(BaseModel):
    """Explicit message ids."""

    kind: Literal["ids"] = "ids"
    ids: list[UUID]


class TimeframeSelection(BaseModel):
    """Relative window; the cutoff is computed when the deletion runs."""

    kind: Literal["timeframe"] = "timeframe"
    timeframe: Timeframe


class CutoffSelection(BaseModel):
    """Fixed window; safe to retry with the same values."""

    kind: Literal["cutoff"] = "cutoff"
    since: datetime
    until: datetime | None = None


DeletionSelection = Annotated[
    Union[IdSelection, TimeframeSelection, CutoffSelection],
    Field(discriminator="kind"),
]


class DeletionRequest(BaseModel):
    """Delete conversations matching a selection within an intent."""

    intent: str = Field(default=settings.DEFAULT_INTENT, max_length=50)
    selection: DeletionSelection


class DeletionResult(BaseModel):
    """Outcome of a deletion; failures are reported here, never raised."""

    success: bool
    deleted_count: int = 0
    error: str | None = None
