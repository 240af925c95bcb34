"""Closed-set variable resolver for auto-reply templates."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone

from cs_automation.config import settings

VARIABLE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")

BUILTIN_VARIABLES = frozenset(
    {"name", "phone_number", "session_id", "date", "time", "company", "support_email"}
)


@dataclass(frozen=True)
class TemplateContext:
    """Participant attributes known at dispatch time."""

    name: str | None = None
    phone_number: str | None = None
    session_id: str | None = None
    now: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def build_variables(
    context: TemplateContext, custom: Mapping[str, object] | None = None
) -> dict[str, str]:
    """Collect resolvable variables; built-ins take precedence over custom ones."""
    values: dict[str, str] = {}

    for key, value in (custom or {}).items():
        if value is not None and str(value) != "":
            values[str(key)] = str(value)

    builtins = {
        "name": context.name,
        "phone_number": context.phone_number,
        "session_id": context.session_id,
        "date": context.now.strftime("%d/%m/%Y"),
        "time": context.now.strftime("%H:%M:%S"),
        "company": settings.COMPANY_NAME,
        "support_email": settings.SUPPORT_EMAIL,
    }
    for key, value in builtins.items():
        if value:
            values[key] = value

    return values


def resolve_template(
    template: str,
    context: TemplateContext,
    custom: Mapping[str, object] | None = None,
) -> str:
    """Replace {{variable}} tokens; unknown or empty variables stay literal."""
    values = build_variables(context, custom)

    def replacer(match: re.Match) -> str:
        return values.get(match.group(1), match.group(0))

    return VARIABLE_PATTERN.sub(replacer, template)
