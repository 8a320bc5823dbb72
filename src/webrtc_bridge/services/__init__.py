"""Services package for call bridging components."""

from .call_registry import CallRegistry
from .orchestrator import BridgeOrchestrator
from .provider_client import ProviderClient
from .session_gateway import SessionGateway
from .teardown import TeardownCoordinator
from .voice_client import VoiceClient
from .web_client import WebClientGateway
from .webrtc_client import WebRtcClient

__all__ = [
    "BridgeOrchestrator",
    "CallRegistry",
    "ProviderClient",
    "SessionGateway",
    "TeardownCoordinator",
    "VoiceClient",
    "WebClientGateway",
    "WebRtcClient",
]
