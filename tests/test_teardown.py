"""Tests for the teardown cascade."""

from unittest.mock import call

import pytest

from src.webrtc_bridge.errors import ProviderError, ProviderNotFound
from src.webrtc_bridge.models.schemas import ParticipantCallback
from src.webrtc_bridge.models.state import CallPhase, CallRecord, CallType, ParticipantInfo


def add_call(registry, n: int, phone_call_id: str, bridge_call_id: str | None = None) -> CallRecord:
    record = CallRecord(
        bridge_participant=ParticipantInfo(id=f"bp-{n}", token=f"token-{n}"),
        call_type=CallType.INCOMING,
        phone_number="+15551234567",
        web_agent_number="+19195550100",
        phone_call_id=phone_call_id,
        phone_call_answered=True,
    )
    registry.put(record)
    if bridge_call_id:
        registry.bind_bridge_call(record, bridge_call_id)
    return record


class TestTeardownRecord:
    """Per-call cleanup."""

    @pytest.mark.asyncio
    async def test_ends_legs_and_deletes_participant(self, teardown, registry, voice_client, session_gateway):
        record = add_call(registry, 1, "C1", "B1")

        await teardown.teardown_record(record)

        assert voice_client.completed == ["B1", "C1"]
        session_gateway.delete_participant.assert_awaited_once_with(record.bridge_participant)
        assert record.phase is CallPhase.TERMINATED
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_skips_legs_already_down(self, teardown, registry, voice_client):
        record = add_call(registry, 1, "C1", "B1")
        record.phone_leg_live = False

        await teardown.teardown_record(record)

        assert voice_client.completed == ["B1"]

    @pytest.mark.asyncio
    async def test_can_leave_phone_leg_running(self, teardown, registry, voice_client, session_gateway):
        record = add_call(registry, 1, "C1", "B1")

        await teardown.teardown_record(record, complete_phone_leg=False)

        assert voice_client.completed == ["B1"]
        session_gateway.delete_participant.assert_awaited_once_with(record.bridge_participant)
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_without_sip_leg(self, teardown, registry, voice_client, session_gateway):
        record = add_call(registry, 1, "C1")
        record.phone_leg_live = False

        await teardown.teardown_record(record)

        assert voice_client.completed == []
        session_gateway.delete_participant.assert_awaited_once()
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_twice_does_not_raise(self, teardown, registry, voice_client, session_gateway):
        record = add_call(registry, 1, "C1", "B1")

        await teardown.teardown_record(record)
        await teardown.teardown_record(record)

        assert voice_client.completed == ["B1", "C1"]
        assert session_gateway.delete_participant.await_count == 1
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_every_step_runs_despite_failures(self, teardown, registry, voice_client, session_gateway):
        record = add_call(registry, 1, "C1", "B1")
        voice_client.complete_errors["B1"] = ProviderError("call already completed", status=409)
        voice_client.complete_errors["C1"] = RuntimeError("connection reset")
        session_gateway.delete_participant.side_effect = ProviderError("server error", status=500)

        await teardown.teardown_record(record)

        assert voice_client.completed == ["B1", "C1"]
        session_gateway.delete_participant.assert_awaited_once()
        assert record.phase is CallPhase.TERMINATED
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_not_found_is_benign(self, teardown, registry, voice_client, not_found):
        record = add_call(registry, 1, "C1", "B1")
        voice_client.complete_errors["B1"] = not_found

        await teardown.teardown_record(record)

        assert len(registry) == 0


class TestTeardownAll:
    """Shutdown and browser-leave cleanup."""

    @pytest.mark.asyncio
    async def test_releases_everything(self, teardown, registry, session_gateway, web_client):
        first = add_call(registry, 1, "C1", "B1")
        second = add_call(registry, 2, "C2")
        browser = ParticipantInfo(id="web-1", token="web-token")
        web_client.take_participants.return_value = [browser]

        await teardown.teardown_all()

        assert len(registry) == 0
        session_gateway.delete_participant.assert_has_awaits(
            [call(first.bridge_participant), call(second.bridge_participant), call(browser)]
        )
        session_gateway.delete_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_partial_failure_does_not_abort(self, teardown, registry, session_gateway, web_client):
        add_call(registry, 1, "C1", "B1")
        add_call(registry, 2, "C2", "B2")
        browser = ParticipantInfo(id="web-1", token="web-token")
        web_client.take_participants.return_value = [browser]
        session_gateway.delete_participant.side_effect = [
            RuntimeError("boom"),
            ProviderNotFound("gone", status=404),
            ProviderError("boom", status=500),
        ]
        session_gateway.delete_session.side_effect = ProviderNotFound("gone", status=404)

        await teardown.teardown_all()

        assert len(registry) == 0
        assert session_gateway.delete_participant.await_count == 3
        session_gateway.delete_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_registry(self, teardown, session_gateway):
        await teardown.teardown_all()

        session_gateway.delete_participant.assert_not_called()
        session_gateway.delete_session.assert_awaited_once()


class TestParticipantEvents:
    """Session-provider participant callbacks."""

    @pytest.mark.asyncio
    async def test_browser_leave_releases_everything(self, teardown, registry, web_client, session_gateway):
        add_call(registry, 1, "C1", "B1")
        web_client.owns_participant.return_value = True

        await teardown.handle_participant_event(
            ParticipantCallback.model_validate({"event": "onLeave", "participantId": "web-1"})
        )

        assert len(registry) == 0
        session_gateway.delete_session.assert_awaited_once()
        web_client.close_channel.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_bridge_participant_leave_ends_its_call(self, teardown, registry, web_client, session_gateway):
        add_call(registry, 1, "C1", "B1")
        other = add_call(registry, 2, "C2", "B2")

        await teardown.handle_participant_event(
            ParticipantCallback.model_validate({"event": "onLeave", "participantId": "bp-1"})
        )

        assert registry.records() == [other]
        session_gateway.delete_session.assert_not_called()
        web_client.notify_call_state.assert_awaited_with("idle")

    @pytest.mark.asyncio
    async def test_other_events_ignored(self, teardown, registry, session_gateway):
        add_call(registry, 1, "C1", "B1")

        await teardown.handle_participant_event(
            ParticipantCallback.model_validate({"event": "onJoin", "participantId": "bp-1"})
        )
        await teardown.handle_participant_event(
            ParticipantCallback.model_validate({"event": "onLeave", "participantId": "stranger"})
        )

        assert len(registry) == 1
        session_gateway.delete_participant.assert_not_called()
