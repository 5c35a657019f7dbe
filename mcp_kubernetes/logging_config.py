"""
Logging configuration with health check suppression.
"""

import logging
import logging.config
from typing import Any, Dict


class HealthCheckFilter(logging.Filter):
    """Filter to suppress health check endpoint logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out liveness probe requests from uvicorn access logs."""
        if record.name == "uvicorn.access":
            message = record.getMessage()
            if "/health" in message and "GET" in message:
                return False
        return True


def get_logging_config(level: str = "INFO", stream: str = "ext://sys.stdout") -> Dict[str, Any]:
    """
    Get logging configuration.

    Args:
        level: Level for application and uvicorn loggers
        stream: Handler stream; stdio mode passes ``ext://sys.stderr`` so
            stdout only carries protocol frames
    """
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "health_check_filter": {
                "()": HealthCheckFilter
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
                "stream": stream
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": stream,
                "filters": ["health_check_filter"]
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
            "mcp_kubernetes": {
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


def configure_logging(level: str = "INFO", stdio: bool = False) -> None:
    """Apply the logging configuration."""
    stream = "ext://sys.stderr" if stdio else "ext://sys.stdout"
    logging.config.dictConfig(get_logging_config(level, stream))
