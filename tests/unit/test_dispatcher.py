"""Unit tests for ManualOverrideDispatcher."""

import pytest

from cs_automation.core.exceptions import InvalidMessageError, WhatsAppAPIError
from cs_automation.db.repositories import ConversationMessageRepository
from cs_automation.models import DeliveryStatus, MessageSource, SenderRole
from cs_automation.schemas import Participant
from cs_automation.services import ManualOverrideDispatcher


async def _thread(db_session, tenant_id, **participant):
    repo = ConversationMessageRepository(db_session)
    return await repo.list_thread(tenant_id, "client", **participant)


class TestManualOverrideDispatcher:
    """Tests for manual operator messages."""

    @pytest.mark.asyncio
    async def test_successful_send_records_agent_message(
        self, db_session, tenant_id, bus, transports, mock_whatsapp_client
    ):
        dispatcher = ManualOverrideDispatcher(db_session, bus, transports)

        result = await dispatcher.send(
            tenant_id, "client", Participant(phone_number="22997000001"), "  Je regarde ça.  "
        )

        assert result.success is True
        assert result.delivery_status == DeliveryStatus.SENT
        assert result.channel == MessageSource.WHATSAPP
        mock_whatsapp_client.send_message.assert_awaited_once_with("22997000001", "Je regarde ça.")

        [message] = await _thread(db_session, tenant_id, phone_number="22997000001")
        assert message.id == result.message_id
        assert message.sender == SenderRole.AGENT
        assert message.delivery_status == DeliveryStatus.SENT
        assert message.external_id == "wamid.HBgM001"
        assert message.synchronized_at is not None

    @pytest.mark.asyncio
    async def test_transport_failure_is_reported_not_raised(
        self, db_session, tenant_id, bus, transports, mock_whatsapp_client
    ):
        """A failed delivery is returned as data and audited as failed."""
        mock_whatsapp_client.send_message.side_effect = WhatsAppAPIError("device offline")
        dispatcher = ManualOverrideDispatcher(db_session, bus, transports)

        result = await dispatcher.send(
            tenant_id, "client", Participant(phone_number="22997000001"), "Bonjour"
        )

        assert result.success is False
        assert result.delivery_status == DeliveryStatus.FAILED
        assert "device offline" in result.error

        [message] = await _thread(db_session, tenant_id, phone_number="22997000001")
        assert message.delivery_status == DeliveryStatus.FAILED
        assert "device offline" in message.extra_data["error"]

    @pytest.mark.asyncio
    async def test_web_participant_goes_through_widget(
        self, db_session, tenant_id, bus, transports, mock_whatsapp_client, mock_redis
    ):
        dispatcher = ManualOverrideDispatcher(db_session, bus, transports)

        result = await dispatcher.send(
            tenant_id, "client", Participant(web_session_id="web_abc"), "Bonjour"
        )

        assert result.success is True
        assert result.channel == MessageSource.WEB
        mock_whatsapp_client.send_message.assert_not_awaited()
        channels = [call.args[0] for call in mock_redis.publish.await_args_list]
        assert f"live_updates:widget:{tenant_id}:web_abc" in channels
        assert f"live_updates:conversations:{tenant_id}:client" in channels

    @pytest.mark.asyncio
    async def test_variables_resolved_from_thread(
        self, db_session, tenant_id, bus, transports, make_message, mock_whatsapp_client
    ):
        await make_message("Bonjour", participant_name="Awa")
        dispatcher = ManualOverrideDispatcher(db_session, bus, transports)

        result = await dispatcher.send(
            tenant_id, "client", Participant(phone_number="22997000001"), "Bonjour {{name}} {{x}}"
        )

        assert result.content == "Bonjour Awa {{x}}"
        mock_whatsapp_client.send_message.assert_awaited_once_with(
            "22997000001", "Bonjour Awa {{x}}"
        )

    @pytest.mark.asyncio
    async def test_empty_text_rejected_before_any_write(
        self, db_session, tenant_id, bus, transports, mock_whatsapp_client
    ):
        dispatcher = ManualOverrideDispatcher(db_session, bus, transports)

        with pytest.raises(InvalidMessageError):
            await dispatcher.send(
                tenant_id, "client", Participant(phone_number="22997000001"), "   "
            )

        mock_whatsapp_client.send_message.assert_not_awaited()
        assert await ConversationMessageRepository(db_session).count() == 0

    @pytest.mark.asyncio
    async def test_overlong_text_rejected(self, db_session, tenant_id, bus, transports):
        dispatcher = ManualOverrideDispatcher(db_session, bus, transports)

        with pytest.raises(InvalidMessageError):
            await dispatcher.send(
                tenant_id, "client", Participant(phone_number="22997000001"), "x" * 4001
            )

    @pytest.mark.asyncio
    async def test_concurrent_sends_are_both_recorded(
        self, db_session, tenant_id, bus, transports
    ):
        dispatcher = ManualOverrideDispatcher(db_session, bus, transports)
        participant = Participant(phone_number="22997000001")

        await dispatcher.send(tenant_id, "client", participant, "Un instant")
        await dispatcher.send(tenant_id, "client", participant, "Un instant")

        thread = await _thread(db_session, tenant_id, phone_number="22997000001")
        assert len(thread) == 2
