#!/usr/bin/env python3
"""Entry point for running the WebRTC bridge application locally."""

import uvicorn

from src.webrtc_bridge.deps import get_cached_settings
from src.webrtc_bridge.main import app

if __name__ == "__main__":
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=get_cached_settings().port,
        log_level="info",
    )
