"""Browser agent WebSocket router."""

import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..deps import get_orchestrator_dependency, get_web_client_dependency
from ..errors import BridgeError
from ..models.schemas import ClientEvent
from ..services.orchestrator import BridgeOrchestrator
from ..services.web_client import WebClientGateway

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/client")
async def client_endpoint(
    websocket: WebSocket,
    web_client: WebClientGateway = Depends(get_web_client_dependency),
    orchestrator: BridgeOrchestrator = Depends(get_orchestrator_dependency),
) -> None:
    """Signalling channel to the browser agent.

    Handles:
    - Single-occupancy registration
    - Status pushes (via the gateway)
    - Outbound call requests
    """
    await websocket.accept()

    try:
        registered = await web_client.register(websocket)
    except BridgeError as e:
        logger.error(f"Failed to register web client: {e}")
        await websocket.close(code=1011)
        return

    if not registered:
        await websocket.close(code=1008)
        return

    try:
        async for message in websocket.iter_text():
            await _process_client_message(message, orchestrator)
    except WebSocketDisconnect:
        logger.info("Web client disconnected")
    except Exception as e:
        logger.error(f"Web client channel error: {e}")
    finally:
        web_client.release(websocket)


async def _process_client_message(message: str, orchestrator: BridgeOrchestrator) -> None:
    """Process a single browser message.

    Args:
        message: Raw WebSocket message
        orchestrator: Bridge orchestrator
    """
    try:
        event = ClientEvent.model_validate(json.loads(message))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Invalid message from web client: {e}")
        return

    logger.info(f"Handling an incoming client event: {event.event}")
    if event.event == "outboundCall":
        try:
            await orchestrator.place_call(event.tn)
        except BridgeError as e:
            logger.error(f"Failed to place call to {event.tn}: {e}")
    else:
        logger.info(f"Message from client not recognized: {message}")
