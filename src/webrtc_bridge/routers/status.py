"""Health router."""

from fastapi import APIRouter, Depends

from ..deps import (
    get_call_registry_dependency,
    get_session_gateway_dependency,
    get_web_client_dependency,
)
from ..models.schemas import HealthResponse
from ..services.call_registry import CallRegistry
from ..services.session_gateway import SessionGateway
from ..services.web_client import WebClientGateway

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    registry: CallRegistry = Depends(get_call_registry_dependency),
    session_gateway: SessionGateway = Depends(get_session_gateway_dependency),
    web_client: WebClientGateway = Depends(get_web_client_dependency),
) -> HealthResponse:
    """Get application health status."""
    return HealthResponse(
        ok=True,
        browserRegistered=web_client.is_registered,
        activeCalls=len(registry),
        sessionId=session_gateway.session_id,
    )
