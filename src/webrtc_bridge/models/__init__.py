"""Data models and schemas for the WebRTC bridge application."""

from .schemas import (
    CallStateUpdateEvent,
    ClientEvent,
    CreateCallResponse,
    CreateParticipantResponse,
    ErrorEvent,
    HealthResponse,
    ParticipantCallback,
    RegisteredEvent,
    SessionResponse,
    VoiceCallback,
)
from .state import CallPhase, CallRecord, CallType, ParticipantInfo

__all__ = [
    "CallPhase",
    "CallRecord",
    "CallStateUpdateEvent",
    "CallType",
    "ClientEvent",
    "CreateCallResponse",
    "CreateParticipantResponse",
    "ErrorEvent",
    "HealthResponse",
    "ParticipantCallback",
    "ParticipantInfo",
    "RegisteredEvent",
    "SessionResponse",
    "VoiceCallback",
]
