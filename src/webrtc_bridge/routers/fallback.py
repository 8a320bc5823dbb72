"""Catch-all for webhooks on paths this application does not serve."""

import logging

from fastapi import APIRouter, Request, Response

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{path:path}")
async def unexpected_post(path: str, request: Request) -> Response:
    body = await request.body()
    logger.info(f"Something unexpected received on /{path}: {body[:500]!r}")
    return Response(status_code=200)
