"""Structured logging configuration using structlog.

Provider credentials travel as query parameters (TMDB ``api_key``, OMDb
``apikey``), so they can surface in request params, in httpx error messages
and in httpx's own request log lines. Every event passes through processors
that mask them before rendering.
"""

import logging
import re
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from desicatalog.config import settings

# Event keys whose values are always masked
SENSITIVE_KEYS = frozenset({"api_key", "apikey", "authorization", "secret"})

# Credentials embedded in URLs, e.g. "...?query=Pagal&api_key=abc123"
URL_SECRET_PATTERN = re.compile(r"((?:api_key|apikey)=)[^&\s'\"]+", re.IGNORECASE)

# Third-party loggers that log full request URLs at INFO
NOISY_LOGGERS = ("httpx", "httpcore")

MASK = "***"


def add_log_level(_logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add log level to the event dict."""
    event_dict["level"] = "warning" if method_name == "warn" else method_name
    return event_dict


def _censor(key: str, value: Any) -> Any:
    if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
        return MASK
    if isinstance(value, dict):
        return {k: _censor(k, v) for k, v in value.items()}
    if isinstance(value, str):
        return URL_SECRET_PATTERN.sub(rf"\1{MASK}", value)
    return value


def censor_sensitive_data(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask provider credentials in keys, nested params and URL strings."""
    return {key: _censor(key, value) for key, value in event_dict.items()}


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Args:
        level: Log level name. Uses settings.log_level if None.
        json_output: Render JSON lines. Defaults to True in production.
    """
    level_name = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.is_production

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        censor_sensitive_data,
    ]

    renderer: Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # foreign_pre_chain runs the censoring on records from httpx and friends
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # stdout carries the probe script's JSON output
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level_name)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
