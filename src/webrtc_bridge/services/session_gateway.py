"""WebRTC session and participant lifecycle."""

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from ..errors import ProviderError, ProviderNotFound, ProviderPreconditionError
from ..models.state import ParticipantInfo
from .webrtc_client import WebRtcClient

logger = logging.getLogger(__name__)


class SessionGateway:
    """Owns the single process-wide WebRTC session and its participant memberships."""

    def __init__(self, webrtc_client: WebRtcClient, session_tag: str, participant_callback_url: str):
        """Initialize session gateway.

        Args:
            webrtc_client: WebRTC API client
            session_tag: Tag attached to newly created sessions
            participant_callback_url: Webhook receiving participant events
        """
        self.webrtc_client = webrtc_client
        self.session_tag = session_tag
        self.participant_callback_url = participant_callback_url
        self._session_id: Optional[str] = None
        self._session_lock = asyncio.Lock()

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    async def ensure_session(self) -> str:
        """Return the cached session id if the provider still knows it, else create a new session.

        Raises:
            ProviderPreconditionError: If session creation returns no id
            ProviderError: If session creation fails
        """
        async with self._session_lock:
            if self._session_id:
                try:
                    existing = await self.webrtc_client.get_session(self._session_id)
                    if existing.id == self._session_id:
                        logger.debug(f"Using session {self._session_id}")
                        return self._session_id
                    logger.warning(f"Saved session id {self._session_id} does not match {existing.id}")
                except (ProviderError, ValidationError) as e:
                    logger.info(f"Session {self._session_id} is invalid ({e}), creating a new session")

            created = await self.webrtc_client.create_session(self.session_tag)
            if not created.id:
                raise ProviderPreconditionError("no session id in create session response")

            self._session_id = created.id
            logger.info(f"Created new session {self._session_id}")
            return self._session_id

    async def create_participant(self, tag: str) -> ParticipantInfo:
        """Create a participant and add it to the current session.

        Raises:
            ProviderPreconditionError: If the provider omits the participant id or token
        """
        response = await self.webrtc_client.create_participant(tag, self.participant_callback_url)

        if response.participant is None or not response.participant.id:
            raise ProviderPreconditionError("the participant was not returned")
        if not response.token:
            raise ProviderPreconditionError("the token was not returned")

        participant = ParticipantInfo(id=response.participant.id, token=response.token)
        logger.info(f"Created new participant {participant.id} ({tag})")

        session_id = await self.ensure_session()
        await self.webrtc_client.add_participant_to_session(session_id, participant.id)
        return participant

    async def delete_participant(self, participant: ParticipantInfo) -> bool:
        """Delete a participant. Returns False if the provider had already removed it."""
        try:
            await self.webrtc_client.delete_participant(participant.id)
        except ProviderNotFound:
            # The media server drops participants itself when their stream goes away.
            logger.info(f"Participant {participant.id} already deleted")
            return False
        logger.info(f"Deleted participant {participant.id}")
        return True

    async def delete_session(self) -> bool:
        """Delete the cached session, if any. Returns False if there was nothing to delete."""
        async with self._session_lock:
            session_id = self._session_id
            if not session_id:
                return False
            try:
                await self.webrtc_client.delete_session(session_id)
            except ProviderNotFound:
                logger.info(f"Session {session_id} already deleted")
                self._session_id = None
                return False
            self._session_id = None
            logger.info(f"Deleted WebRTC session {session_id}")
            return True
