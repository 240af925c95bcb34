"""Unit tests for the inbound message pipeline."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from uuid import uuid4

import pytest

from cs_automation.core.exceptions import InvalidMessageError, WhatsAppAPIError
from cs_automation.db.repositories import ConversationMessageRepository
from cs_automation.models import DeliveryStatus, MessageSource, SenderRole
from cs_automation.schemas import InboundMessage
from cs_automation.services import InboundProcessor
from cs_automation.services.inbound import inbound_from_whatsapp
from cs_automation.services.synchronizer import ReconciliationReport

T0 = datetime.now(timezone.utc).replace(microsecond=0)


async def _thread(db_session, tenant_id, **participant):
    repo = ConversationMessageRepository(db_session)
    return await repo.list_thread(tenant_id, "client", **participant)


class TestInboundProcessor:
    """Tests for InboundProcessor.handle."""

    @pytest.mark.asyncio
    async def test_matching_message_gets_bot_reply(
        self, db_session, tenant_id, bus, transports, make_rule, mock_whatsapp_client
    ):
        rule = await make_rule(["facture"], "Bonjour {{name}}, le service facturation arrive.")
        processor = InboundProcessor(db_session, bus, transports)

        result = await processor.handle(
            tenant_id,
            InboundMessage(
                phone_number="22997000001",
                content="J'ai un problème de facture",
                participant_name="Awa",
                created_at=T0,
            ),
        )

        assert result.duplicate is False
        assert result.rule_id == rule.id
        assert result.auto_reply.success is True
        mock_whatsapp_client.send_message.assert_awaited_once_with(
            "22997000001", "Bonjour Awa, le service facturation arrive."
        )

        customer, bot = await _thread(db_session, tenant_id, phone_number="22997000001")
        assert customer.id == result.message_id
        assert customer.sender == SenderRole.CUSTOMER
        assert customer.delivery_status == DeliveryStatus.RECEIVED
        assert bot.sender == SenderRole.BOT
        assert bot.rule_id == rule.id
        assert bot.response_time >= 0

    @pytest.mark.asyncio
    async def test_no_match_records_message_only(
        self, db_session, tenant_id, bus, transports, make_rule, mock_whatsapp_client, mock_redis
    ):
        await make_rule(["facture"], "Facturation")
        processor = InboundProcessor(db_session, bus, transports)

        result = await processor.handle(
            tenant_id, InboundMessage(phone_number="22997000001", content="bonjour")
        )

        assert result.auto_reply is None
        assert result.rule_id is None
        mock_whatsapp_client.send_message.assert_not_awaited()
        assert len(await _thread(db_session, tenant_id, phone_number="22997000001")) == 1
        channel, _ = mock_redis.publish.await_args.args
        assert channel == f"live_updates:conversations:{tenant_id}:client"

    @pytest.mark.asyncio
    async def test_duplicate_delivery_is_answered_once(
        self, db_session, tenant_id, bus, transports, make_rule, mock_whatsapp_client
    ):
        """The same greeting arriving twice, 2s apart, gets a single reply."""
        await make_rule(["bonjour"], "Bienvenue !")
        processor = InboundProcessor(db_session, bus, transports)

        first = await processor.handle(
            tenant_id,
            InboundMessage(phone_number="22997000001", content="Bonjour", created_at=T0),
        )
        second = await processor.handle(
            tenant_id,
            InboundMessage(
                phone_number="22997000001",
                content="Bonjour",
                source=MessageSource.WEB,
                created_at=T0 + timedelta(seconds=2),
            ),
        )

        assert first.duplicate is False
        assert second.duplicate is True
        assert second.auto_reply is None
        mock_whatsapp_client.send_message.assert_awaited_once()
        thread = await _thread(db_session, tenant_id, phone_number="22997000001")
        assert [m.sender for m in thread] == [SenderRole.CUSTOMER, SenderRole.BOT]

    @pytest.mark.asyncio
    async def test_redelivery_with_same_timestamp_is_answered_once(
        self, db_session, tenant_id, bus, transports, make_rule, mock_whatsapp_client
    ):
        await make_rule(["bonjour"], "Bienvenue !")
        processor = InboundProcessor(db_session, bus, transports)
        inbound = InboundMessage(
            phone_number="22997000001", content="Bonjour", external_id="ABCD1", created_at=T0
        )

        first = await processor.handle(tenant_id, inbound)
        second = await processor.handle(tenant_id, inbound)

        assert first.duplicate is False
        assert second.duplicate is True
        mock_whatsapp_client.send_message.assert_awaited_once()
        thread = await _thread(db_session, tenant_id, phone_number="22997000001")
        assert [m.id for m in thread if m.sender == SenderRole.CUSTOMER] == [first.message_id]

    @pytest.mark.asyncio
    async def test_earlier_copy_arriving_second_is_not_answered(
        self, db_session, tenant_id, bus, transports, make_rule, mock_whatsapp_client
    ):
        """The web copy arrives first; the WhatsApp copy carries an earlier timestamp."""
        await make_rule(["bonjour"], "Bienvenue !")
        processor = InboundProcessor(db_session, bus, transports)

        await processor.handle(
            tenant_id,
            InboundMessage(
                phone_number="22997000001",
                content="Bonjour",
                source=MessageSource.WEB,
                created_at=T0 + timedelta(seconds=1),
            ),
        )
        second = await processor.handle(
            tenant_id,
            InboundMessage(phone_number="22997000001", content="Bonjour", created_at=T0),
        )

        assert second.duplicate is True
        mock_whatsapp_client.send_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_copy_removed_by_another_pass_is_not_answered(
        self, db_session, tenant_id, bus, transports, make_rule, mock_whatsapp_client
    ):
        await make_rule(["bonjour"], "Bienvenue !")
        processor = InboundProcessor(db_session, bus, transports)
        repo = ConversationMessageRepository(db_session)

        async def removed_elsewhere(tenant, intent, participant):
            pending = await repo.list_unsynchronized(tenant, intent)
            await repo.delete_by_ids([m.id for m in pending], tenant_id=tenant, intent=intent)
            return ReconciliationReport()

        with patch.object(processor.synchronizer, "reconcile", side_effect=removed_elsewhere):
            result = await processor.handle(
                tenant_id, InboundMessage(phone_number="22997000001", content="Bonjour")
            )

        assert result.duplicate is True
        mock_whatsapp_client.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_reply_is_audited(
        self, db_session, tenant_id, bus, transports, make_rule, mock_whatsapp_client
    ):
        await make_rule(["facture"], "Facturation")
        mock_whatsapp_client.send_message.side_effect = WhatsAppAPIError("timeout")
        processor = InboundProcessor(db_session, bus, transports)

        result = await processor.handle(
            tenant_id, InboundMessage(phone_number="22997000001", content="facture")
        )

        assert result.auto_reply.success is False
        _, failed = await _thread(db_session, tenant_id, phone_number="22997000001")
        assert failed.delivery_status == DeliveryStatus.FAILED
        assert failed.sender == SenderRole.BOT

    @pytest.mark.asyncio
    async def test_web_visitor_reply_goes_to_widget(
        self, db_session, tenant_id, bus, transports, make_rule, mock_whatsapp_client, mock_redis
    ):
        await make_rule(["tarif"], "Nos tarifs sont en ligne.")
        processor = InboundProcessor(db_session, bus, transports)

        result = await processor.handle(
            tenant_id,
            InboundMessage(web_session_id="web_abc", content="vos tarifs ?", source=MessageSource.WEB),
        )

        assert result.auto_reply.channel == MessageSource.WEB
        mock_whatsapp_client.send_message.assert_not_awaited()
        channels = {call.args[0] for call in mock_redis.publish.await_args_list}
        assert f"live_updates:widget:{tenant_id}:web_abc" in channels

    @pytest.mark.asyncio
    async def test_other_tenant_rules_never_fire(
        self, db_session, tenant_id, bus, transports, make_rule, mock_whatsapp_client
    ):
        await make_rule(["facture"], "Facturation", tenant=uuid4())
        processor = InboundProcessor(db_session, bus, transports)

        result = await processor.handle(
            tenant_id, InboundMessage(phone_number="22997000001", content="facture")
        )

        assert result.auto_reply is None

    @pytest.mark.asyncio
    async def test_blank_content_rejected_before_write(self, db_session, tenant_id, bus, transports):
        processor = InboundProcessor(db_session, bus, transports)

        with pytest.raises(InvalidMessageError):
            await processor.handle(
                tenant_id, InboundMessage(phone_number="22997000001", content="   ")
            )

        assert await ConversationMessageRepository(db_session).count() == 0


class TestInboundFromWhatsApp:
    """Tests for gateway event parsing."""

    def test_parses_customer_message(self, sample_message_data):
        inbound = inbound_from_whatsapp(sample_message_data)

        assert inbound.phone_number == "22997000001"
        assert inbound.content == "J'ai un problème de facture"
        assert inbound.participant_name == "Awa"
        assert inbound.external_id == "ABCD1234567890"
        assert inbound.source == MessageSource.WHATSAPP
        assert inbound.created_at == datetime.fromtimestamp(1741597200, tz=timezone.utc)

    def test_group_messages_are_ignored(self, sample_message_data):
        sample_message_data["isGroup"] = True

        assert inbound_from_whatsapp(sample_message_data) is None

    def test_empty_body_is_ignored(self, sample_message_data):
        sample_message_data["body"] = ""

        assert inbound_from_whatsapp(sample_message_data) is None

    def test_intent_override(self, sample_message_data):
        assert inbound_from_whatsapp(sample_message_data, "influencer").intent == "influencer"
