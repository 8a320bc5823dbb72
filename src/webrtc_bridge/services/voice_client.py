"""Call-control (voice) API client."""

import logging
from typing import Optional

from ..errors import ProviderPreconditionError
from ..models.schemas import CreateCallResponse
from .provider_client import ProviderClient

logger = logging.getLogger(__name__)


class VoiceClient(ProviderClient):
    """Places and ends call-control calls."""

    def __init__(
        self,
        base_url: str,
        account_id: str,
        username: str,
        password: str,
        application_id: str,
        from_number: str,
        timeout: float = 15.0,
    ):
        super().__init__(base_url, account_id, username, password, timeout=timeout)
        self.application_id = application_id
        self.from_number = from_number

    async def create_call(
        self,
        to: str,
        answer_url: str,
        disconnect_url: str,
        tag: Optional[str] = None,
        uui: Optional[str] = None,
    ) -> str:
        """Place a call from the application number.

        Args:
            to: Destination phone number or SIP URI
            answer_url: Webhook hit when the call is answered
            disconnect_url: Webhook hit when the call ends
            tag: Correlation tag echoed in every webhook for this call
            uui: User-to-user information SIP header value

        Returns:
            The new call id

        Raises:
            ProviderPreconditionError: If the response carries no call id
        """
        body = {
            "from": self.from_number,
            "to": to,
            "answerUrl": answer_url,
            "disconnectUrl": disconnect_url,
            "applicationId": self.application_id,
        }
        if tag:
            body["tag"] = tag
        if uui:
            body["uui"] = uui

        response = CreateCallResponse.model_validate(await self.request("POST", "calls", body) or {})
        if not response.call_id:
            raise ProviderPreconditionError(f"no call id returned for call to {to}")

        logger.info(f"Initiated call {response.call_id} to {to}")
        return response.call_id

    async def complete_call(self, call_id: str) -> None:
        """Hang up a call by moving it to the completed state."""
        await self.request("POST", f"calls/{call_id}", {"state": "completed"})
        logger.info(f"Ending call {call_id}")
