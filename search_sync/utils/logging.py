"""
Logging configuration for the Search Sync service.

Log lines go through structlog onto the standard library root logger, so
uvicorn and redis-py records share the same stdout handler.
"""

import logging
import sys
from typing import Any, Dict, List, Optional

import structlog
from structlog.stdlib import LoggerFactory
from structlog.types import Processor

from search_sync.core.config import Environment, Settings


def service_info(settings: Settings) -> Processor:
    """Build a processor stamping the service identity on every event."""
    identity = {
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
    }

    def add_service_info(logger: Any, name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
        for key, value in identity.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_info


def configure_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure structured logging for the application.

    Development gets the console renderer, which formats exceptions itself.
    Every other environment emits one JSON object per line with tracebacks
    rendered as structured frames.

    Args:
        settings: Settings providing the log level and service identity
    """
    settings = settings or Settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=str(settings.LOG_LEVEL).upper(),
        force=True,
    )

    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        service_info(settings),
    ]

    if settings.ENVIRONMENT == Environment.DEVELOPMENT:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ])

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
