"""Dependency injection and service wiring."""

import logging
from functools import lru_cache

from .services import (
    BridgeOrchestrator,
    CallRegistry,
    SessionGateway,
    TeardownCoordinator,
    VoiceClient,
    WebClientGateway,
    WebRtcClient,
)
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_cached_settings() -> Settings:
    """Get settings loaded once for the process."""
    return get_settings()


@lru_cache()
def get_call_registry() -> CallRegistry:
    """Get singleton call registry instance."""
    return CallRegistry()


@lru_cache()
def get_voice_client() -> VoiceClient:
    """Get call-control API client instance."""
    settings = get_cached_settings()
    return VoiceClient(
        settings.voice_api_url,
        settings.account_id,
        settings.username,
        settings.password,
        application_id=settings.voice_application_id,
        from_number=settings.application_number,
        timeout=settings.provider_timeout_seconds,
    )


@lru_cache()
def get_webrtc_client() -> WebRtcClient:
    """Get WebRTC session API client instance."""
    settings = get_cached_settings()
    return WebRtcClient(
        settings.webrtc_api_url,
        settings.account_id,
        settings.username,
        settings.password,
        timeout=settings.provider_timeout_seconds,
    )


@lru_cache()
def get_session_gateway() -> SessionGateway:
    """Get session gateway instance."""
    settings = get_cached_settings()
    return SessionGateway(
        get_webrtc_client(),
        session_tag=settings.session_tag,
        participant_callback_url=settings.callback_url("/killConnection"),
    )


@lru_cache()
def get_web_client_gateway() -> WebClientGateway:
    """Get browser gateway instance."""
    return WebClientGateway(get_session_gateway(), get_cached_settings().application_number)


@lru_cache()
def get_teardown_coordinator() -> TeardownCoordinator:
    """Get teardown coordinator instance."""
    return TeardownCoordinator(
        get_call_registry(),
        get_session_gateway(),
        get_voice_client(),
        get_web_client_gateway(),
    )


@lru_cache()
def get_orchestrator() -> BridgeOrchestrator:
    """Get bridge orchestrator instance."""
    return BridgeOrchestrator(
        get_call_registry(),
        get_session_gateway(),
        get_voice_client(),
        get_web_client_gateway(),
        get_teardown_coordinator(),
        get_cached_settings(),
    )


# Dependency factories for FastAPI
def get_call_registry_dependency() -> CallRegistry:
    """FastAPI dependency for the call registry."""
    return get_call_registry()


def get_session_gateway_dependency() -> SessionGateway:
    """FastAPI dependency for the session gateway."""
    return get_session_gateway()


def get_web_client_dependency() -> WebClientGateway:
    """FastAPI dependency for the browser gateway."""
    return get_web_client_gateway()


def get_teardown_dependency() -> TeardownCoordinator:
    """FastAPI dependency for the teardown coordinator."""
    return get_teardown_coordinator()


def get_orchestrator_dependency() -> BridgeOrchestrator:
    """FastAPI dependency for the bridge orchestrator."""
    return get_orchestrator()
