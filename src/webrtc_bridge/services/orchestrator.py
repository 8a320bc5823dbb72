"""Call-leg correlation state machine driven by call-control webhooks.

A logical call has three independently signaled legs: the phone call, the
SIP bridge call into the WebRTC platform, and the bridge-participant that
stands in for the phone inside the WebRTC session. The two call-control legs
are placed without waiting for each other and their answer webhooks can
arrive in either order, so both answer handlers re-check the same gate:
bridge once both legs are answered and both call ids are known. Whichever
handler observes the gate open first emits the single ``<Bridge>``; the other
one holds.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional

from .. import errors
from ..models.schemas import VoiceCallback
from ..models.state import CallRecord, CallType
from ..settings import Settings
from . import bxml
from .call_registry import CallRegistry
from .phone_numbers import validate_phone_number
from .session_gateway import SessionGateway
from .teardown import TeardownCoordinator
from .voice_client import VoiceClient
from .web_client import WebClientGateway

logger = logging.getLogger(__name__)

PHONE_PARTICIPANT_TAG = "hello-world-phone"
BRIDGE_END_EVENTS = frozenset({"bridgeTargetComplete", "bridgeComplete"})

INBOUND_HOLD_SENTENCE = "We're finding the other party"
CALL_ANSWERED_SENTENCE = "The call will start now"
BRIDGE_ANSWERED_SENTENCE = "a call is happening"
NEUTRAL_HOLD_SENTENCE = "Please hold"
UNAVAILABLE_SENTENCE = "We are unable to connect your call right now. Goodbye."


class BridgeOrchestrator:
    """Drives each :class:`CallRecord` from creation to bridged."""

    def __init__(
        self,
        registry: CallRegistry,
        session_gateway: SessionGateway,
        voice_client: VoiceClient,
        web_client: WebClientGateway,
        teardown: TeardownCoordinator,
        settings: Settings,
    ):
        """Initialize orchestrator.

        Args:
            registry: Store of in-flight calls
            session_gateway: Allocates bridge-participants
            voice_client: Places phone and SIP legs
            web_client: Receives browser status updates
            teardown: Cleanup cascade for finished calls
            settings: Application settings
        """
        self.registry = registry
        self.session_gateway = session_gateway
        self.voice_client = voice_client
        self.web_client = web_client
        self.teardown = teardown
        self.settings = settings
        self._leg_tasks: set[asyncio.Task] = set()

    # ----- Call origination -----

    async def handle_incoming_call(self, callback: VoiceCallback) -> str:
        """Allocate a bridge-participant for an inbound call and hold the caller.

        The SIP leg is placed in the background; its answer webhook completes
        the bridge.
        """
        logger.info(f"Incoming call received from {callback.from_number} ({callback.call_id})")
        await self.web_client.notify_call_state("inbound call")

        if not callback.call_id:
            logger.warning("Incoming call webhook without a call id")
            return self.neutral_response()

        if self.registry.by_phone_call(callback.call_id) is not None:
            logger.info(f"Duplicate incoming call webhook for {callback.call_id}")
            return self._hold(INBOUND_HOLD_SENTENCE)

        try:
            participant = await self.session_gateway.create_participant(PHONE_PARTICIPANT_TAG)
        except errors.BridgeError as e:
            logger.error(f"Cannot bridge inbound call {callback.call_id}: {e}")
            return bxml.unavailable(UNAVAILABLE_SENTENCE)

        # Inbound calls are live as soon as the provider hands them to us.
        record = CallRecord(
            bridge_participant=participant,
            call_type=CallType.INCOMING,
            phone_number=callback.from_number or "",
            web_agent_number=self.settings.application_number,
            phone_call_id=callback.call_id,
            phone_call_answered=True,
        )
        try:
            self.registry.put(record)
        except errors.CallRecordConflict as e:
            logger.info(f"Duplicate incoming call webhook for {callback.call_id}: {e}")
            await self.session_gateway.delete_participant(participant)
            return self._hold(INBOUND_HOLD_SENTENCE)

        self._start_leg(self._place_sip_leg(record))
        logger.info(f"Bridging inbound call {callback.call_id} through {record.key}")
        return self._hold(INBOUND_HOLD_SENTENCE)

    async def place_call(self, tn: Optional[str]) -> Optional[CallRecord]:
        """Dial ``tn`` for the browser agent.

        The phone leg and the SIP leg are placed concurrently. Malformed
        numbers are logged and dropped.

        Raises:
            BridgeError: If the bridge-participant cannot be allocated
        """
        logger.info(f"Calling a phone {tn}")
        try:
            validate_phone_number(tn)
        except errors.InvalidPhoneNumber as e:
            logger.warning(str(e))
            return None

        participant = await self.session_gateway.create_participant(PHONE_PARTICIPANT_TAG)
        record = CallRecord(
            bridge_participant=participant,
            call_type=CallType.OUTGOING,
            phone_number=tn,
            web_agent_number=self.settings.application_number,
            phone_call_answered=False,
        )
        self.registry.put(record)

        self._start_leg(self._place_sip_leg(record))
        self._start_leg(self._place_phone_leg(record))
        return record

    # ----- Answer webhooks: the AND-gate -----

    async def handle_call_answered(self, callback: VoiceCallback) -> str:
        """Outbound phone leg answered."""
        logger.info(f"Received answered callback for outbound call {callback.call_id} to {callback.to_number}")

        record = self._resolve(callback, self.registry.by_phone_call)
        if record is None:
            logger.warning(f"No call record for answered phone call {callback.call_id}")
            return self.neutral_response()

        async with self.registry.lock(record.key):
            if record.is_terminating:
                logger.info(f"Phone call {callback.call_id} answered after teardown of {record.key}")
                return self.neutral_response()

            if callback.call_id:
                self.registry.bind_phone_call(record, callback.call_id)
            record.phone_call_answered = True

            if record.claim_bridge():
                logger.info(f"Bridging phone call {record.phone_call_id} to SIP leg {record.bridge_call_id}")
                return bxml.bridge_now(
                    CALL_ANSWERED_SENTENCE,
                    record.bridge_call_id,
                    bridge_target_complete_url=self.settings.callback_url("/endBridgeLeg"),
                )

        logger.info(f"Phone call {record.phone_call_id} waiting for SIP leg of {record.key}")
        return self._hold(CALL_ANSWERED_SENTENCE)

    async def handle_bridge_call_answered(self, callback: VoiceCallback) -> str:
        """SIP leg into the WebRTC platform answered."""
        logger.info(f"Received answered callback for SIP bridge {callback.call_id} to {callback.to_number}")

        record = self._resolve(callback, self.registry.by_bridge_call)
        if record is None:
            logger.warning(f"No call record for answered SIP bridge call {callback.call_id}")
            return self.neutral_response()

        response = None
        async with self.registry.lock(record.key):
            if record.is_terminating:
                logger.info(f"SIP bridge {callback.call_id} answered after teardown of {record.key}")
                return self.neutral_response()

            if callback.call_id:
                self.registry.bind_bridge_call(record, callback.call_id)
            record.sip_leg_answered = True

            if record.claim_bridge():
                logger.info(f"Bridging SIP leg {record.bridge_call_id} to phone call {record.phone_call_id}")
                response = bxml.bridge_now(
                    BRIDGE_ANSWERED_SENTENCE,
                    record.phone_call_id,
                    bridge_complete_url=self.settings.callback_url("/endBridgeLeg"),
                )

        if response is None:
            logger.info(f"SIP leg {record.bridge_call_id} waiting for phone leg of {record.key}")
            response = self._hold(BRIDGE_ANSWERED_SENTENCE)

        # Optimistic: the bridge completes once the phone side is ready.
        await self.web_client.notify_call_state("connected")
        return response

    # ----- Termination webhooks -----

    async def handle_call_status(self, callback: VoiceCallback) -> None:
        """Disconnect of either leg ends the whole logical call."""
        if callback.event_type != "disconnect":
            logger.info(f"Received unexpected status update {callback.event_type} for {callback.call_id}")
            return

        record = self.registry.by_phone_call(callback.call_id)
        if record is not None:
            record.phone_leg_live = False
            leg = "phone"
        else:
            record = self.registry.by_bridge_call(callback.call_id)
            if record is not None:
                record.sip_leg_live = False
                leg = "SIP bridge"
            elif callback.tag:
                record = self.registry.get(callback.tag)
                leg = "unbound"

        if record is None:
            logger.info(f"Disconnect for {callback.call_id} has no call record, already cleaned up")
            return

        logger.info(f"Received disconnect of {leg} leg {callback.call_id} ({callback.cause}) for {record.key}")
        await self.teardown.teardown_record(record)
        await self.web_client.notify_call_state("idle")

    async def handle_end_bridge_leg(self, callback: VoiceCallback) -> Optional[str]:
        """Bridge finished: one side hung up. Returns None for unrelated events."""
        if callback.event_type not in BRIDGE_END_EVENTS:
            logger.info(f"Received unexpected bridge status update {callback.event_type}")
            return None

        logger.info(f"Received endBridgeLeg event for call {callback.call_id}")
        record = (
            self.registry.by_bridge_call(callback.call_id)
            or self.registry.by_phone_call(callback.call_id)
            or (self.registry.get(callback.tag) if callback.tag else None)
        )
        if record is None:
            logger.info(f"Bridge for {callback.call_id} already cleaned up")
        else:
            await self.teardown.teardown_record(record, complete_phone_leg=False)

        await self.web_client.notify_call_state("idle")
        return bxml.pause_only(self.settings.end_bridge_pause_seconds)

    # ----- Leg placement -----

    async def _place_sip_leg(self, record: CallRecord) -> None:
        record.sip_leg_requested = True
        try:
            call_id = await self.voice_client.create_call(
                to=self.settings.webrtc_sip_uri,
                answer_url=self.settings.callback_url("/bridgeCallAnswered"),
                disconnect_url=self.settings.callback_url("/callStatus"),
                tag=record.key,
                uui=f"{record.bridge_participant.token};encoding=jwt",
            )
        except errors.BridgeError as e:
            logger.error(f"Error calling {self.settings.webrtc_sip_uri} for {record.key}: {e}")
            await self._abandon(record)
            return

        logger.info(f"Establishing SIP bridge {call_id} between voice and WebRTC for {record.key}")
        await self._bind_leg(record, call_id, self.registry.bind_bridge_call, lambda: record.bridge_call_id)

    async def _place_phone_leg(self, record: CallRecord) -> None:
        try:
            call_id = await self.voice_client.create_call(
                to=record.phone_number,
                answer_url=self.settings.callback_url("/callAnswered"),
                disconnect_url=self.settings.callback_url("/callStatus"),
                tag=record.key,
            )
        except errors.BridgeError as e:
            logger.error(f"Error calling {record.phone_number}: {e}")
            await self._abandon(record)
            return

        if await self._bind_leg(record, call_id, self.registry.bind_phone_call, lambda: record.phone_call_id):
            await self.web_client.notify_call_state("outbound call")

    async def _bind_leg(
        self,
        record: CallRecord,
        call_id: str,
        bind: Callable[[CallRecord, str], bool],
        current_id: Callable[[], Optional[str]],
    ) -> bool:
        """Write a freshly created call id into its record.

        A leg created after its record started terminating is hung up at once,
        unless the teardown already knew its id.
        """
        async with self.registry.lock(record.key):
            if not record.is_terminating:
                try:
                    bind(record, call_id)
                    return True
                except errors.CallRecordConflict as e:
                    logger.error(f"Cannot record call {call_id} for {record.key}: {e}")
            elif current_id() == call_id:
                return False

        logger.info(f"Hanging up orphaned call {call_id} of {record.key}")
        try:
            await self.voice_client.complete_call(call_id)
        except errors.ProviderError as e:
            logger.warning(f"Could not end orphaned call {call_id}: {e}")
        return False

    async def _abandon(self, record: CallRecord) -> None:
        await self.teardown.teardown_record(record)
        await self.web_client.notify_call_state("idle")

    def _start_leg(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._leg_tasks.add(task)
        task.add_done_callback(self._leg_done)
        return task

    def _leg_done(self, task: asyncio.Task) -> None:
        self._leg_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Leg placement failed: {task.exception()!r}")

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait for leg placements still in flight."""
        if not self._leg_tasks:
            return
        done, pending = await asyncio.wait(set(self._leg_tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Cancelled {len(pending)} leg placements still running at shutdown")

    # ----- Helpers -----

    def _resolve(
        self,
        callback: VoiceCallback,
        by_call_id: Callable[[Optional[str]], Optional[CallRecord]],
    ) -> Optional[CallRecord]:
        # The tag carries the registry key; it resolves webhooks that beat the create-call response.
        record = by_call_id(callback.call_id)
        if record is None and callback.tag:
            record = self.registry.get(callback.tag)
        return record

    def _hold(self, sentence: str) -> str:
        return bxml.hold(sentence, self.settings.hold_pause_seconds)

    def neutral_response(self) -> str:
        """Harmless instruction for webhooks that cannot be correlated."""
        return self._hold(NEUTRAL_HOLD_SENTENCE)
