"""WebRTC session API client."""

import logging

from ..models.schemas import CreateParticipantResponse, SessionResponse
from .provider_client import ProviderClient

logger = logging.getLogger(__name__)


class WebRtcClient(ProviderClient):
    """Creates and removes sessions and participants."""

    async def create_session(self, tag: str) -> SessionResponse:
        body = await self.request("POST", "sessions", {"tag": tag})
        return SessionResponse.model_validate(body or {})

    async def get_session(self, session_id: str) -> SessionResponse:
        body = await self.request("GET", f"sessions/{session_id}")
        return SessionResponse.model_validate(body or {})

    async def delete_session(self, session_id: str) -> None:
        await self.request("DELETE", f"sessions/{session_id}")

    async def create_participant(self, tag: str, callback_url: str) -> CreateParticipantResponse:
        """Create an audio-publishing participant whose events go to ``callback_url``."""
        body = await self.request(
            "POST",
            "participants",
            {
                "tag": tag,
                "publishPermissions": ["AUDIO"],
                "deviceApiVersion": "V3",
                "callbackUrl": callback_url,
            },
        )
        return CreateParticipantResponse.model_validate(body or {})

    async def add_participant_to_session(self, session_id: str, participant_id: str) -> None:
        await self.request(
            "PUT",
            f"sessions/{session_id}/participants/{participant_id}",
            {"sessionId": session_id},
        )

    async def delete_participant(self, participant_id: str) -> None:
        await self.request("DELETE", f"participants/{participant_id}")
