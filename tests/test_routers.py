"""Tests for the HTTP and WebSocket surface."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from src.webrtc_bridge.deps import (
    get_call_registry_dependency,
    get_orchestrator_dependency,
    get_session_gateway_dependency,
    get_teardown_dependency,
    get_web_client_dependency,
)
from src.webrtc_bridge.errors import ProviderError
from src.webrtc_bridge.main import create_app
from src.webrtc_bridge.models.schemas import ParticipantCallback, VoiceCallback
from src.webrtc_bridge.services.orchestrator import BridgeOrchestrator
from src.webrtc_bridge.services.teardown import TeardownCoordinator
from src.webrtc_bridge.services.web_client import SINGLE_OCCUPANCY_MESSAGE, WebClientGateway

NEUTRAL = "<?xml version=\"1.0\" encoding=\"UTF-8\"?><Response><SpeakSentence>Please hold</SpeakSentence></Response>"
HOLD = "<?xml version=\"1.0\" encoding=\"UTF-8\"?><Response><SpeakSentence>We're finding the other party</SpeakSentence></Response>"


@pytest.fixture
def orchestrator_mock():
    orchestrator = MagicMock(spec=BridgeOrchestrator)
    orchestrator.neutral_response.return_value = NEUTRAL
    orchestrator.handle_incoming_call.return_value = HOLD
    orchestrator.handle_call_status.return_value = None
    orchestrator.handle_end_bridge_leg.return_value = None
    return orchestrator


@pytest.fixture
def teardown_mock():
    teardown = MagicMock(spec=TeardownCoordinator)
    teardown.handle_participant_event = AsyncMock(return_value=None)
    return teardown


@pytest.fixture
def web_gateway(session_gateway, mock_settings):
    return WebClientGateway(session_gateway, mock_settings.application_number)


@pytest.fixture
def client(orchestrator_mock, teardown_mock, web_gateway, registry, session_gateway):
    app = create_app()
    app.dependency_overrides[get_orchestrator_dependency] = lambda: orchestrator_mock
    app.dependency_overrides[get_teardown_dependency] = lambda: teardown_mock
    app.dependency_overrides[get_web_client_dependency] = lambda: web_gateway
    app.dependency_overrides[get_call_registry_dependency] = lambda: registry
    app.dependency_overrides[get_session_gateway_dependency] = lambda: session_gateway
    # No context manager: the shutdown teardown is not wanted here.
    return TestClient(app)


class TestVoiceCallbacks:
    """Call-control webhook endpoints."""

    def test_incoming_call_returns_bxml(self, client, orchestrator_mock):
        response = client.post(
            "/incomingCall",
            json={"eventType": "initiate", "callId": "c-1", "from": "+15551234567", "to": "+19195550100"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        assert response.text == HOLD

        callback = orchestrator_mock.handle_incoming_call.await_args.args[0]
        assert isinstance(callback, VoiceCallback)
        assert callback.call_id == "c-1"
        assert callback.from_number == "+15551234567"

    def test_handler_failure_still_answers(self, client, orchestrator_mock):
        orchestrator_mock.handle_call_answered.side_effect = RuntimeError("boom")

        response = client.post("/callAnswered", json={"eventType": "answer", "callId": "c-1", "tag": "bp-1"})

        assert response.status_code == 200
        assert response.text == NEUTRAL

    def test_unparseable_body(self, client, orchestrator_mock):
        response = client.post(
            "/bridgeCallAnswered",
            content=b"not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 200
        assert response.text == NEUTRAL
        orchestrator_mock.handle_bridge_call_answered.assert_not_awaited()

    def test_call_status_is_empty(self, client, orchestrator_mock):
        response = client.post("/callStatus", json={"eventType": "disconnect", "callId": "c-1", "cause": "hangup"})

        assert response.status_code == 200
        assert response.content == b""
        assert orchestrator_mock.handle_call_status.await_args.args[0].cause == "hangup"

    def test_call_status_failure_is_empty(self, client, orchestrator_mock):
        orchestrator_mock.handle_call_status.side_effect = ProviderError("down", status=503)

        response = client.post("/callStatus", json={"eventType": "disconnect", "callId": "c-1"})

        assert response.status_code == 200
        assert response.content == b""

    def test_end_bridge_leg_document(self, client, orchestrator_mock):
        orchestrator_mock.handle_end_bridge_leg.return_value = "<Response><Pause duration=\"10\" /></Response>"

        response = client.post("/endBridgeLeg", json={"eventType": "bridgeComplete", "callId": "c-1"})

        assert response.status_code == 200
        assert "Pause" in response.text


class TestKillConnection:
    """WebRTC participant callbacks."""

    def test_forwards_participant_event(self, client, teardown_mock):
        response = client.post(
            "/killConnection",
            json={"event": "onLeave", "participantId": "web-1", "sessionId": "session-1"},
        )

        assert response.status_code == 200
        event = teardown_mock.handle_participant_event.await_args.args[0]
        assert isinstance(event, ParticipantCallback)
        assert event.participant_id == "web-1"

    def test_teardown_failure_still_answers(self, client, teardown_mock):
        teardown_mock.handle_participant_event.side_effect = RuntimeError("boom")

        response = client.post("/killConnection", json={"event": "onLeave", "participantId": "web-1"})

        assert response.status_code == 200


def test_unknown_post_is_acknowledged(client):
    response = client.post("/someOtherWebhook", json={"anything": True})

    assert response.status_code == 200
    assert response.content == b""


def test_health(client, registry):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "browserRegistered": False,
        "activeCalls": 0,
        "sessionId": "session-1",
    }


class TestClientChannel:
    """Browser WebSocket."""

    def test_registers_browser(self, client, web_gateway):
        with client.websocket_connect("/client") as ws:
            message = ws.receive_json()
            assert web_gateway.is_registered

        assert message == {"event": "registered", "token": "token-1", "tn": "+19195550100", "callState": "idle"}
        assert not web_gateway.is_registered
        assert web_gateway.owns_participant("bp-1")

    def test_second_browser_rejected(self, client, web_gateway):
        with client.websocket_connect("/client") as first:
            first.receive_json()
            with client.websocket_connect("/client") as second:
                rejection = second.receive_json()

            assert web_gateway.is_registered

        assert rejection == {"event": "error", "message": SINGLE_OCCUPANCY_MESSAGE}

    def test_outbound_call_request(self, client, web_gateway, orchestrator_mock):
        async def place_call(tn):
            await web_gateway.notify_call_state("outbound call")

        orchestrator_mock.place_call.side_effect = place_call

        with client.websocket_connect("/client") as ws:
            ws.receive_json()
            ws.send_json({"event": "outboundCall", "tn": "+15551234567"})
            update = ws.receive_json()

        assert update == {"event": "callStateUpdate", "callState": "outbound call"}
        orchestrator_mock.place_call.assert_awaited_once_with("+15551234567")

    def test_registration_failure_closes(self, client, session_gateway, web_gateway):
        session_gateway.create_participant.side_effect = ProviderError("down", status=503)

        with client.websocket_connect("/client") as ws:
            with pytest.raises(WebSocketDisconnect):
                ws.receive_json()

        assert not web_gateway.is_registered
