"""Test configuration for pytest."""

import itertools
from unittest.mock import MagicMock

import pytest

from src.webrtc_bridge.errors import ProviderNotFound
from src.webrtc_bridge.models.state import ParticipantInfo
from src.webrtc_bridge.services.call_registry import CallRegistry
from src.webrtc_bridge.services.orchestrator import BridgeOrchestrator
from src.webrtc_bridge.services.session_gateway import SessionGateway
from src.webrtc_bridge.services.teardown import TeardownCoordinator
from src.webrtc_bridge.services.web_client import WebClientGateway
from src.webrtc_bridge.settings import Settings

from fakes import TEST_ENV, FakeVoiceClient


@pytest.fixture
def mock_settings(monkeypatch):
    """Create settings from a test environment."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    return Settings(_env_file=None)


@pytest.fixture
def registry():
    return CallRegistry()


@pytest.fixture
def voice_client():
    return FakeVoiceClient()


@pytest.fixture
def session_gateway():
    """Session gateway double issuing bp-1, bp-2, ... participants."""
    gateway = MagicMock(spec=SessionGateway)
    counter = itertools.count(1)

    def create_participant(tag):
        n = next(counter)
        return ParticipantInfo(id=f"bp-{n}", token=f"token-{n}")

    gateway.create_participant.side_effect = create_participant
    gateway.delete_participant.return_value = True
    gateway.delete_session.return_value = True
    gateway.session_id = "session-1"
    return gateway


@pytest.fixture
def web_client():
    client = MagicMock(spec=WebClientGateway)
    client.owns_participant.return_value = False
    client.take_participants.return_value = []
    client.is_registered = False
    return client


@pytest.fixture
def teardown(registry, session_gateway, voice_client, web_client):
    return TeardownCoordinator(registry, session_gateway, voice_client, web_client)


@pytest.fixture
def orchestrator(registry, session_gateway, voice_client, web_client, teardown, mock_settings):
    return BridgeOrchestrator(registry, session_gateway, voice_client, web_client, teardown, mock_settings)


@pytest.fixture
def not_found():
    return ProviderNotFound("gone", status=404)
