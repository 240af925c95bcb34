"""Rule-based auto-reply engine using trigger-word matching."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from uuid import UUID

from cs_automation.agents.variables import TemplateContext, resolve_template
from cs_automation.core.telemetry import get_tracer
from cs_automation.models import AutoReplyRule

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)


@dataclass(frozen=True)
class RuleMatch:
    """The winning rule and its resolved response."""

    rule_id: UUID
    response: str
    matched_trigger: str


@dataclass(frozen=True)
class RuleOverlap:
    """Two active rules sharing trigger words; the shadowed one never wins on them."""

    winner_id: UUID
    shadowed_id: UUID
    words: tuple[str, ...]
    severity: str


def normalize(text: str) -> str:
    return text.strip().casefold()


def normalize_trigger_words(words: Iterable[str]) -> list[str]:
    """Trim, lowercase and dedupe trigger words, dropping blanks, keeping order."""
    seen: dict[str, None] = {}
    for word in words:
        token = normalize(word or "")
        if token:
            seen.setdefault(token, None)
    return list(seen)


def evaluation_order(rules: Iterable[AutoReplyRule]) -> list[AutoReplyRule]:
    """Sort rules by priority descending, then id ascending."""
    return sorted(rules, key=lambda rule: (-rule.priority, rule.id))


class RuleEngine:
    """Evaluates an inbound message against a tenant's auto-reply rules.

    First match wins: candidates are walked in evaluation order and the
    first rule with any trigger word contained in the normalized message
    produces the response. The engine holds no state beyond the rule
    snapshot it was built with, so evaluating the same message twice gives
    the same answer.
    """

    def __init__(self, rules: Sequence[AutoReplyRule], tenant_id: UUID | None = None):
        candidates = [rule for rule in rules if rule.is_active]
        if tenant_id is not None:
            candidates = [rule for rule in candidates if rule.tenant_id == tenant_id]
        self.rules = evaluation_order(candidates)

    def evaluate(
        self, content: str, context: TemplateContext | None = None
    ) -> RuleMatch | None:
        """Return the first matching rule's resolved response, or None."""
        text = normalize(content or "")
        if not text:
            return None

        with tracer.start_as_current_span("rules.evaluate") as span:
            span.set_attribute("rules.candidates", len(self.rules))

            for rule in self.rules:
                trigger = self._first_trigger(rule, text)
                if trigger is None:
                    continue

                response = resolve_template(
                    rule.response, context or TemplateContext(), rule.variables
                )
                span.set_attribute("rules.matched", str(rule.id))
                logger.debug(f"Rule {rule.id} matched on trigger '{trigger}'")
                return RuleMatch(rule_id=rule.id, response=response, matched_trigger=trigger)

        logger.debug("No auto-reply rule matched")
        return None

    @staticmethod
    def _first_trigger(rule: AutoReplyRule, text: str) -> str | None:
        for word in rule.trigger_words or []:
            token = normalize(word)
            if token and token in text:
                return token
        return None


def find_rule_overlaps(rules: Sequence[AutoReplyRule]) -> list[RuleOverlap]:
    """Report pairs of active rules whose trigger sets intersect."""
    ordered = evaluation_order(rule for rule in rules if rule.is_active)
    overlaps: list[RuleOverlap] = []

    for i, winner in enumerate(ordered):
        winner_words = {normalize(w) for w in winner.trigger_words or [] if normalize(w)}
        for shadowed in ordered[i + 1 :]:
            shared = sorted(
                winner_words
                & {normalize(w) for w in shadowed.trigger_words or [] if normalize(w)}
            )
            if not shared:
                continue
            overlaps.append(
                RuleOverlap(
                    winner_id=winner.id,
                    shadowed_id=shadowed.id,
                    words=tuple(shared),
                    severity="high" if len(shared) > 2 else "medium",
                )
            )

    return overlaps
