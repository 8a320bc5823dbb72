"""Logging configuration for the WebRTC bridge application."""

import logging.config
from typing import Dict, Any

# "webrtc_bridge" when installed, "src.webrtc_bridge" when run from a checkout.
PACKAGE_LOGGER = __name__.rpartition(".")[0]


def get_logging_config() -> Dict[str, Any]:
    """Get logging configuration dictionary."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "INFO",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "detailed_console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "detailed",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            PACKAGE_LOGGER: {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
            f"{PACKAGE_LOGGER}.services.orchestrator": {
                "level": "INFO",
                "handlers": ["detailed_console"],
                "propagate": False,
            },
            f"{PACKAGE_LOGGER}.services.teardown": {
                "level": "INFO",
                "handlers": ["detailed_console"],
                "propagate": False,
            },
            "uvicorn": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": "WARNING",
            "handlers": ["console"],
        },
    }


def setup_logging() -> None:
    """Configure logging for the application."""
    logging.config.dictConfig(get_logging_config())

    logger = logging.getLogger(__name__)
    logger.info("Logging configuration initialized")
