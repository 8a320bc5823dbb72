"""Cleanup cascade for call records, the browser participant and the session."""

import logging

from ..errors import ProviderError, ProviderNotFound
from ..models.schemas import ParticipantCallback
from ..models.state import CallRecord
from .call_registry import CallRegistry
from .session_gateway import SessionGateway
from .voice_client import VoiceClient
from .web_client import WebClientGateway

logger = logging.getLogger(__name__)


class TeardownCoordinator:
    """Tears down call legs, participants and the session.

    Every step is attempted independently: a failure is logged and the
    remaining steps still run.
    """

    def __init__(
        self,
        registry: CallRegistry,
        session_gateway: SessionGateway,
        voice_client: VoiceClient,
        web_client: WebClientGateway,
    ):
        self.registry = registry
        self.session_gateway = session_gateway
        self.voice_client = voice_client
        self.web_client = web_client

    async def teardown_record(self, record: CallRecord, complete_phone_leg: bool = True) -> None:
        """End the SIP leg, delete the bridge-participant and drop the record.

        A phone leg still believed live is completed too, unless
        ``complete_phone_leg`` is False: after a bridge completes, the
        remaining leg is ended by the document returned to it instead.

        Safe to call more than once for the same record.
        """
        async with self.registry.lock(record.key):
            if not record.begin_termination():
                if not self.registry.delete(record.key):
                    logger.info(f"Call record {record.key} already removed")
                return

            logger.info(f"Tearing down {record}")

            if record.bridge_call_id and record.sip_leg_live:
                await self._complete_call(record.bridge_call_id, "SIP bridge leg")
            else:
                logger.info(f"No live SIP bridge leg for {record.key}")

            if complete_phone_leg and record.phone_call_id and record.phone_leg_live:
                await self._complete_call(record.phone_call_id, "phone leg")

            try:
                await self.session_gateway.delete_participant(record.bridge_participant)
            except Exception as e:
                logger.error(f"Failed to delete bridge participant {record.key}: {e}")

            record.finish_termination()
            if not self.registry.delete(record.key):
                logger.info(f"Call record {record.key} was already removed")

    async def teardown_all(self) -> None:
        """Tear down every call, the browser participant and the session."""
        logger.info("Deallocating all configured resources")

        for record in self.registry.records():
            try:
                await self.teardown_record(record)
            except Exception as e:
                logger.error(f"Failed to tear down {record.key}: {e}")

        for participant in self.web_client.take_participants():
            try:
                await self.session_gateway.delete_participant(participant)
            except Exception as e:
                logger.error(f"Failed to delete browser participant {participant.id}: {e}")

        try:
            await self.session_gateway.delete_session()
        except Exception as e:
            logger.error(f"Failed to delete session: {e}")

    async def handle_participant_event(self, event: ParticipantCallback) -> None:
        """React to a session participant leaving."""
        if event.event != "onLeave":
            logger.info(f"Ignoring participant event {event.event} for {event.participant_id}")
            return

        if self.web_client.owns_participant(event.participant_id):
            logger.info("Browser participant left, deallocating all resources")
            await self.teardown_all()
            await self.web_client.close_channel()
            return

        record = self.registry.get(event.participant_id) if event.participant_id else None
        if record is None:
            logger.info(f"No resources held for departed participant {event.participant_id}")
            return

        logger.info(f"Bridge participant {record.key} left, tearing down its call")
        await self.teardown_record(record)
        await self.web_client.notify_call_state("idle")

    async def _complete_call(self, call_id: str, leg: str) -> None:
        try:
            await self.voice_client.complete_call(call_id)
        except ProviderNotFound:
            logger.info(f"{leg} {call_id} already ended")
        except ProviderError as e:
            # The provider rejects completing a call that has already hung up.
            logger.warning(f"Could not end {leg} {call_id}, assuming it is gone: {e}")
        except Exception as e:
            logger.error(f"Error ending {leg} {call_id}: {e}")
