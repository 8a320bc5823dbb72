"""Pydantic schemas for webhooks, provider responses and browser channel messages."""

from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field


class VoiceCallback(BaseModel):
    """Call-control webhook body.

    Only the fields the bridge reads are declared; everything else the
    provider sends is kept as extra data for logging.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    event_type: Optional[str] = Field(default=None, alias="eventType")
    call_id: Optional[str] = Field(default=None, alias="callId")
    from_number: Optional[str] = Field(default=None, alias="from")
    to_number: Optional[str] = Field(default=None, alias="to")
    tag: Optional[str] = None
    cause: Optional[str] = None


class ParticipantCallback(BaseModel):
    """WebRTC session-provider participant event (e.g. onLeave)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    event: Optional[str] = None
    participant_id: Optional[str] = Field(default=None, alias="participantId")
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class CreateCallResponse(BaseModel):
    """Subset of the call-control create-call response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    call_id: Optional[str] = Field(default=None, alias="callId")


class SessionResponse(BaseModel):
    """Subset of the WebRTC session resource."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    tag: Optional[str] = None


class ParticipantResource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    tag: Optional[str] = None


class CreateParticipantResponse(BaseModel):
    """WebRTC create-participant response."""

    model_config = ConfigDict(extra="ignore")

    participant: Optional[ParticipantResource] = None
    token: Optional[str] = None


class ClientEvent(BaseModel):
    """Message sent by the browser over its WebSocket."""

    model_config = ConfigDict(extra="allow")

    event: str
    tn: Optional[str] = None


class RegisteredEvent(BaseModel):
    event: Literal["registered"] = "registered"
    token: str
    tn: str
    callState: str = "idle"


class CallStateUpdateEvent(BaseModel):
    event: Literal["callStateUpdate"] = "callStateUpdate"
    callState: str


class ErrorEvent(BaseModel):
    event: Literal["error"] = "error"
    message: str


class HealthResponse(BaseModel):
    """Response from health endpoint."""
    ok: bool
    browserRegistered: bool
    activeCalls: int
    sessionId: Optional[str]
