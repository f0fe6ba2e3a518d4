"""Structured logging infrastructure with structlog."""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict

from .settings import settings


def add_service_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag every log event with the service identifier."""
    event_dict.setdefault("service", settings.mirror_service_name)
    return event_dict


def setup_logging() -> None:
    """Configure structured logging with structlog."""
    level = getattr(logging, settings.mirror_log_level.upper(), logging.INFO)

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # trace_id and friends
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_service_name,
            structlog.processors.JSONRenderer()
            if settings.mirror_log_level.upper() == "DEBUG"
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
