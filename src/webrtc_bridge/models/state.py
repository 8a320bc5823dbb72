"""Call correlation state."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from ..errors import CallRecordConflict


class ParticipantInfo(BaseModel):
    """A WebRTC session membership and its media delivery token."""

    model_config = ConfigDict(frozen=True)

    id: str
    token: str


class CallType(str, Enum):
    """Direction of the phone leg."""

    INCOMING = "incoming"
    OUTGOING = "outgoing"


class CallPhase(str, Enum):
    """Lifecycle phase of a logical call."""

    CREATED = "created"
    SIP_LEG_REQUESTED = "sip_leg_requested"
    SIP_LEG_ESTABLISHED = "sip_leg_established"
    PHONE_LEG_ANSWERED = "phone_leg_answered"
    BRIDGED = "bridged"
    TERMINATING = "terminating"
    TERMINATED = "terminated"


# Fields a registry filter may name.
MATCHABLE_FIELDS = frozenset(
    {
        "key",
        "call_type",
        "bridge_call_id",
        "phone_call_id",
        "phone_number",
        "phone_call_answered",
        "web_agent_number",
    }
)


class CallRecord:
    """Correlation state joining a bridge-participant, its SIP leg and its phone leg.

    The record is keyed by the bridge-participant id, the only identifier that
    exists before either call-control call has been placed. Call ids are
    written once and never change; a new call always gets a new record.
    """

    def __init__(
        self,
        bridge_participant: ParticipantInfo,
        call_type: CallType,
        phone_number: str,
        web_agent_number: str,
        phone_call_id: Optional[str] = None,
        phone_call_answered: bool = False,
    ):
        self.bridge_participant = bridge_participant
        self.call_type = call_type
        self.phone_number = phone_number
        self.web_agent_number = web_agent_number
        self.phone_call_answered = phone_call_answered

        self._phone_call_id: Optional[str] = None
        self._bridge_call_id: Optional[str] = None
        if phone_call_id:
            self._assign("_phone_call_id", phone_call_id)

        self.sip_leg_requested = False
        self.sip_leg_answered = False
        self.phone_leg_live = phone_call_id is not None
        self.sip_leg_live = False
        self.bridged = False
        self._terminal_phase: Optional[CallPhase] = None

    @property
    def key(self) -> str:
        """Registry key; the bridge-participant id."""
        return self.bridge_participant.id

    @property
    def phone_call_id(self) -> Optional[str]:
        return self._phone_call_id

    @property
    def bridge_call_id(self) -> Optional[str]:
        return self._bridge_call_id

    def _assign(self, attr: str, value: str) -> bool:
        current = getattr(self, attr)
        if current == value:
            return False
        if current is not None:
            raise CallRecordConflict(
                f"call {self.key} already has {attr.lstrip('_')}={current}, refusing {value}"
            )
        setattr(self, attr, value)
        return True

    def set_phone_call_id(self, call_id: str) -> bool:
        """Record the phone leg call id. Returns False if it was already set to this value."""
        changed = self._assign("_phone_call_id", call_id)
        if changed:
            self.phone_leg_live = True
        return changed

    def set_bridge_call_id(self, call_id: str) -> bool:
        """Record the SIP leg call id. Returns False if it was already set to this value."""
        changed = self._assign("_bridge_call_id", call_id)
        if changed:
            self.sip_leg_live = True
        return changed

    @property
    def phase(self) -> CallPhase:
        """Current lifecycle phase, derived from the two converging leg tracks."""
        if self._terminal_phase is not None:
            return self._terminal_phase
        if self.bridged:
            return CallPhase.BRIDGED
        if self.phone_call_answered:
            return CallPhase.PHONE_LEG_ANSWERED
        if self.sip_leg_answered:
            return CallPhase.SIP_LEG_ESTABLISHED
        if self.sip_leg_requested:
            return CallPhase.SIP_LEG_REQUESTED
        return CallPhase.CREATED

    @property
    def is_terminating(self) -> bool:
        return self._terminal_phase is not None

    @property
    def ready_to_bridge(self) -> bool:
        """Both legs answered, both call ids known, and not yet bridged."""
        return (
            not self.bridged
            and not self.is_terminating
            and self.phone_call_answered
            and self.sip_leg_answered
            and self._phone_call_id is not None
            and self._bridge_call_id is not None
        )

    def claim_bridge(self) -> bool:
        """Take the single bridge slot of this record.

        Returns True exactly once over the record's lifetime, on the first
        call made while :attr:`ready_to_bridge` holds.
        """
        if not self.ready_to_bridge:
            return False
        self.bridged = True
        return True

    def begin_termination(self) -> bool:
        """Move to TERMINATING. Returns False if termination already started."""
        if self._terminal_phase is not None:
            return False
        self._terminal_phase = CallPhase.TERMINATING
        return True

    def finish_termination(self) -> None:
        self._terminal_phase = CallPhase.TERMINATED
        self.sip_leg_live = False
        self.phone_leg_live = False

    def field_value(self, name: str) -> Any:
        if name not in MATCHABLE_FIELDS:
            raise ValueError(f"unknown call record field: {name}")
        return getattr(self, name)

    def matches(self, filters: dict[str, Any]) -> bool:
        """True when every filter field equals this record's value for it."""
        return all(self.field_value(name) == value for name, value in filters.items())

    def __repr__(self) -> str:
        return (
            f"CallRecord(key={self.key!r}, type={self.call_type.value}, "
            f"phone_call_id={self._phone_call_id!r}, bridge_call_id={self._bridge_call_id!r}, "
            f"phase={self.phase.value})"
        )
