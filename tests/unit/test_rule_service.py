"""Unit tests for AutoReplyRuleService."""

from uuid import uuid4

import pytest

from cs_automation.core.exceptions import InvalidRuleError, NotFoundError
from cs_automation.db.repositories import AutoReplyRuleRepository
from cs_automation.schemas import AutoReplyRuleCreate, AutoReplyRuleUpdate
from cs_automation.services import AutoReplyRuleService


class TestAutoReplyRuleService:
    """Tests for rule management."""

    @pytest.mark.asyncio
    async def test_create_normalizes_trigger_words(self, db_session, tenant_id):
        service = AutoReplyRuleService(db_session, tenant_id)

        rule = await service.create(
            AutoReplyRuleCreate(
                trigger_words=[" Facture ", "facture", "PAIEMENT"],
                response="Service facturation",
                priority=3,
            )
        )

        assert rule.trigger_words == ["facture", "paiement"]
        assert rule.tenant_id == tenant_id
        assert rule.priority == 3

    @pytest.mark.asyncio
    async def test_rule_without_triggers_is_rejected_and_not_stored(self, db_session, tenant_id):
        """An invalid rule raises and nothing is written."""
        service = AutoReplyRuleService(db_session, tenant_id)

        with pytest.raises(InvalidRuleError):
            await service.create(AutoReplyRuleCreate(trigger_words=["  ", ""], response="Hi"))

        assert await AutoReplyRuleRepository(db_session).count() == 0

    @pytest.mark.asyncio
    async def test_rule_with_blank_response_is_rejected(self, db_session, tenant_id):
        service = AutoReplyRuleService(db_session, tenant_id)

        with pytest.raises(InvalidRuleError):
            await service.create(AutoReplyRuleCreate(trigger_words=["aide"], response="   "))

        assert await AutoReplyRuleRepository(db_session).count() == 0

    @pytest.mark.asyncio
    async def test_invalid_update_leaves_rule_unchanged(self, db_session, tenant_id, make_rule):
        rule = await make_rule(["facture"], "Facturation")
        service = AutoReplyRuleService(db_session, tenant_id)

        with pytest.raises(InvalidRuleError):
            await service.update(rule.id, AutoReplyRuleUpdate(trigger_words=[" "]))

        stored = await service.get(rule.id)
        assert stored.trigger_words == ["facture"]

    @pytest.mark.asyncio
    async def test_partial_update(self, db_session, tenant_id, make_rule):
        rule = await make_rule(["facture"], "Facturation", priority=1)
        service = AutoReplyRuleService(db_session, tenant_id)

        updated = await service.update(
            rule.id, AutoReplyRuleUpdate(priority=7, trigger_words=["Reçu"])
        )

        assert updated.priority == 7
        assert updated.trigger_words == ["reçu"]
        assert updated.response == "Facturation"

    @pytest.mark.asyncio
    async def test_other_tenant_rule_is_not_found(self, db_session, make_rule):
        rule = await make_rule(["facture"], "Facturation")
        service = AutoReplyRuleService(db_session, uuid4())

        with pytest.raises(NotFoundError):
            await service.get(rule.id)
        with pytest.raises(NotFoundError):
            await service.delete(rule.id)

    @pytest.mark.asyncio
    async def test_list_in_evaluation_order(self, db_session, tenant_id, make_rule):
        low = await make_rule(["a"], "low", priority=1)
        high = await make_rule(["b"], "high", priority=9)
        await make_rule(["c"], "foreign", priority=50, tenant=uuid4())
        service = AutoReplyRuleService(db_session, tenant_id)

        items, total = await service.list()

        assert total == 2
        assert [r.id for r in items] == [high.id, low.id]

    @pytest.mark.asyncio
    async def test_delete(self, db_session, tenant_id, make_rule):
        rule = await make_rule(["a"], "A")
        service = AutoReplyRuleService(db_session, tenant_id)

        await service.delete(rule.id)

        with pytest.raises(NotFoundError):
            await service.get(rule.id)

    @pytest.mark.asyncio
    async def test_overlaps_only_consider_active_rules(self, db_session, tenant_id, make_rule):
        winner = await make_rule(["facture", "paiement"], "A", priority=5)
        shadowed = await make_rule(["paiement"], "B", priority=1)
        await make_rule(["facture"], "inactive", is_active=False)
        service = AutoReplyRuleService(db_session, tenant_id)

        overlaps = await service.overlaps()

        assert len(overlaps) == 1
        assert overlaps[0].winner_id == winner.id
        assert overlaps[0].shadowed_id == shadowed.id
