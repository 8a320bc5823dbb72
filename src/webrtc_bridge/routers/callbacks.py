"""Webhook router for call-control and WebRTC session callbacks.

Every handler answers with a success status: the call-control provider
treats a failed webhook as a reason to drop the call.
"""

import json
import logging
import traceback
from typing import Awaitable, Callable, Optional, TypeVar

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, ValidationError

from ..deps import get_orchestrator_dependency, get_teardown_dependency
from ..models.schemas import ParticipantCallback, VoiceCallback
from ..services import bxml
from ..services.orchestrator import BridgeOrchestrator
from ..services.teardown import TeardownCoordinator

logger = logging.getLogger(__name__)

router = APIRouter()

ModelT = TypeVar("ModelT", bound=BaseModel)


@router.post("/incomingCall")
async def incoming_call(
    request: Request,
    orchestrator: BridgeOrchestrator = Depends(get_orchestrator_dependency),
) -> Response:
    """Inbound PSTN call for the application number."""
    callback = await _parse(request, VoiceCallback)
    if callback is None:
        return _document(orchestrator.neutral_response())
    return await _run(request, orchestrator.handle_incoming_call, callback, orchestrator.neutral_response())


@router.post("/callAnswered")
async def call_answered(
    request: Request,
    orchestrator: BridgeOrchestrator = Depends(get_orchestrator_dependency),
) -> Response:
    """Outbound PSTN call picked up."""
    callback = await _parse(request, VoiceCallback)
    if callback is None:
        return _document(orchestrator.neutral_response())
    return await _run(request, orchestrator.handle_call_answered, callback, orchestrator.neutral_response())


@router.post("/bridgeCallAnswered")
async def bridge_call_answered(
    request: Request,
    orchestrator: BridgeOrchestrator = Depends(get_orchestrator_dependency),
) -> Response:
    """SIP leg into the WebRTC platform picked up."""
    callback = await _parse(request, VoiceCallback)
    if callback is None:
        return _document(orchestrator.neutral_response())
    return await _run(request, orchestrator.handle_bridge_call_answered, callback, orchestrator.neutral_response())


@router.post("/callStatus")
async def call_status(
    request: Request,
    orchestrator: BridgeOrchestrator = Depends(get_orchestrator_dependency),
) -> Response:
    """Call status changes, primarily disconnects."""
    callback = await _parse(request, VoiceCallback)
    if callback is None:
        return _document(None)
    return await _run(request, orchestrator.handle_call_status, callback, None)


@router.post("/endBridgeLeg")
async def end_bridge_leg(
    request: Request,
    orchestrator: BridgeOrchestrator = Depends(get_orchestrator_dependency),
) -> Response:
    """Bridge completion for either side of a bridged call."""
    callback = await _parse(request, VoiceCallback)
    if callback is None:
        return _document(None)
    return await _run(request, orchestrator.handle_end_bridge_leg, callback, None)


@router.post("/killConnection")
async def kill_connection(
    request: Request,
    teardown: TeardownCoordinator = Depends(get_teardown_dependency),
) -> Response:
    """WebRTC participant events; a departing browser releases everything."""
    event = await _parse(request, ParticipantCallback)
    if event is None:
        return _document(None)
    return await _run(request, teardown.handle_participant_event, event, None)


async def _parse(request: Request, model: type[ModelT]) -> Optional[ModelT]:
    try:
        body = await request.json()
        return model.model_validate(body)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Unparseable webhook on {request.url.path}: {e}")
        return None


async def _run(
    request: Request,
    handler: Callable[[ModelT], Awaitable[Optional[str]]],
    payload: ModelT,
    fallback: Optional[str],
) -> Response:
    try:
        document = await handler(payload)
    except Exception as e:
        logger.error(f"Webhook {request.url.path} failed: {e}")
        logger.error(traceback.format_exc())
        document = fallback
    return _document(document)


def _document(document: Optional[str]) -> Response:
    if document is None:
        return Response(status_code=200)
    return Response(content=document, media_type=bxml.MEDIA_TYPE)
