"""Rule-based auto-reply engine."""

from cs_automation.agents.rule_based import (
    RuleEngine,
    RuleMatch,
    RuleOverlap,
    evaluation_order,
    find_rule_overlaps,
    normalize_trigger_words,
)
from cs_automation.agents.variables import TemplateContext, resolve_template

__all__ = [
    "RuleEngine",
    "RuleMatch",
    "RuleOverlap",
    "TemplateContext",
    "evaluation_order",
    "find_rule_overlaps",
    "normalize_trigger_words",
    "resolve_template",
]
