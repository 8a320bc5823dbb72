"""Browser agent registration and status relay."""

import logging
from typing import Optional, Protocol

from pydantic import BaseModel

from ..models.schemas import CallStateUpdateEvent, ErrorEvent, RegisteredEvent
from ..models.state import ParticipantInfo
from .session_gateway import SessionGateway

logger = logging.getLogger(__name__)

BROWSER_PARTICIPANT_TAG = "hello-world-browser"
SINGLE_OCCUPANCY_MESSAGE = "only one browser agent is allowed"


class ClientChannel(Protocol):
    """The parts of a WebSocket the gateway uses."""

    async def send_text(self, data: str) -> None:
        ...

    async def close(self, code: int = 1000) -> None:
        ...


class WebClientGateway:
    """Single-occupancy gate for the browser agent and its status channel."""

    def __init__(
        self,
        session_gateway: SessionGateway,
        application_number: str,
        participant_tag: str = BROWSER_PARTICIPANT_TAG,
    ):
        """Initialize web client gateway.

        Args:
            session_gateway: Session gateway used to allocate the browser participant
            application_number: Telephone number shown to the browser
            participant_tag: Tag for the browser's session participant
        """
        self.session_gateway = session_gateway
        self.application_number = application_number
        self.participant_tag = participant_tag

        self._channel: Optional[ClientChannel] = None
        self._participant: Optional[ParticipantInfo] = None
        # Kept after the channel closes so the provider's late onLeave still matches.
        self._departed: Optional[ParticipantInfo] = None

    @property
    def is_registered(self) -> bool:
        return self._channel is not None

    @property
    def participant(self) -> Optional[ParticipantInfo]:
        return self._participant

    async def register(self, channel: ClientChannel) -> bool:
        """Register a newly connected browser channel.

        Returns:
            True if the channel became the browser agent, False if it was rejected

        Raises:
            BridgeError: If the browser participant could not be created
        """
        if self._channel is not None:
            logger.warning("Rejecting second browser connection, one is already registered")
            await self._send(channel, ErrorEvent(message=SINGLE_OCCUPANCY_MESSAGE))
            return False

        # Claimed before the first await so a concurrent connection is rejected.
        self._channel = channel
        try:
            participant = await self.session_gateway.create_participant(self.participant_tag)
        except Exception:
            if self._channel is channel:
                self._channel = None
            raise

        self._participant = participant
        logger.info("Websocket connection established with web client")
        await self._send(
            channel,
            RegisteredEvent(token=participant.token, tn=self.application_number, callState="idle"),
        )
        return True

    def release(self, channel: ClientChannel) -> Optional[ParticipantInfo]:
        """Forget the registration held by ``channel``; in-flight calls are left alone."""
        if channel is not self._channel:
            return None

        logger.info("Closing the web client connection")
        participant = self._participant
        self._channel = None
        self._participant = None
        if participant is not None:
            self._departed = participant
        return participant

    def owns_participant(self, participant_id: Optional[str]) -> bool:
        """True for the current or most recently departed browser participant."""
        if not participant_id:
            return False
        return any(
            p is not None and p.id == participant_id for p in (self._participant, self._departed)
        )

    def take_participants(self) -> list[ParticipantInfo]:
        """Hand over every browser participant still known, forgetting them."""
        participants = [p for p in (self._participant, self._departed) if p is not None]
        self._participant = None
        self._departed = None
        return participants

    async def notify_call_state(self, call_state: str) -> None:
        """Push a callStateUpdate to the browser, if one is connected."""
        if self._channel is None:
            logger.debug(f"No web client to notify of call state '{call_state}'")
            return
        logger.info(f"Updating the call state: {call_state}")
        await self._send(self._channel, CallStateUpdateEvent(callState=call_state))

    async def close_channel(self) -> None:
        channel = self._channel
        if channel is None:
            return
        self.release(channel)
        try:
            await channel.close()
        except Exception as e:
            logger.warning(f"Failed to close web client channel: {e}")

    async def _send(self, channel: ClientChannel, event: BaseModel) -> None:
        try:
            await channel.send_text(event.model_dump_json())
        except Exception as e:
            logger.warning(f"Failed to send {event.__class__.__name__} to web client: {e}")
