"""Bridge between PSTN calls and a browser's WebRTC session over a SIP trunk leg."""

__version__ = "1.0.0"
