"""
Logging configuration that keeps executor polling out of the access log.

Everything is written to stderr: stdout belongs to the MCP stdio transport.
"""

import logging
import logging.config
from typing import Any, Dict

QUIET_PATHS = ("/health", "/commands/poll")


class PollingNoiseFilter(logging.Filter):
    """Filter to suppress health probe and executor poll access logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Drop uvicorn access lines for GET requests to quiet paths."""
        if record.name == "uvicorn.access":
            message = record.getMessage()
            if "GET" in message and any(f"{path} " in message for path in QUIET_PATHS):
                return False
        return True


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration with poll and health check suppression."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "polling_noise_filter": {
                "()": PollingNoiseFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "access": {
                "format": "%(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr"
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stderr",
                "filters": ["polling_noise_filter"]
            }
        },
        "loggers": {
            "uvicorn": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            },
            "uvicorn.error": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            },
            "uvicorn.access": {
                "handlers": ["access"],
                "level": level,
                "propagate": False
            },
            "designbridge": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            }
        },
        "root": {
            "level": level,
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
