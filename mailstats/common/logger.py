"""
Structured logging for MailStats.

Every module logs through `get_logger(__name__)` with key-value fields.
Production renders one JSON object per line (serialized with orjson),
development renders coloured console output. Acelle API tokens never reach
the output: any field named like a credential is masked.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from mailstats.common.config import get_settings
from mailstats.common.utils import json_dumps

# Field names whose values are credentials
SECRET_FIELDS = frozenset(
    {"api_token", "api-token", "x-acelle-token", "authorization", "token", "password"}
)

# httpx logs full request URLs, api_token query parameter included, at INFO
QUIET_LOGGERS = ("httpx", "httpcore")

REDACTED = "***"


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in SECRET_FIELDS else _redact(v)
            for k, v in value.items()
        }
    return value


def redact_secrets(_logger: WrappedLogger, _method: str, event_dict: EventDict) -> EventDict:
    """Mask credential fields, including those nested in `details` mappings."""
    for key, value in event_dict.items():
        if key.lower() in SECRET_FIELDS:
            event_dict[key] = REDACTED
        elif isinstance(value, Mapping):
            event_dict[key] = _redact(value)
    return event_dict


def setup_logging() -> None:
    """Configure structlog and the standard library from settings."""
    settings = get_settings()
    level = logging.getLevelName(settings.logging.level)

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
        redact_secrets,
    ]

    if settings.logging.format == "json":
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(serializer=json_dumps),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # sqlalchemy and uvicorn go through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Module logger, bound with `logger_name` when a name is given."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger


def log_context(**kwargs: Any) -> None:
    """
    Bind fields to every later log line of the current request or task.

    Usage:
        log_context(request_id="abc123", account_id="acc-1")
        logger.info("Resolving statistics")  # carries request_id and account_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()


setup_logging()
