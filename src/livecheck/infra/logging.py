"""
Logging configuration for livecheck.

This module configures structlog for JSON logging across the application.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

from .settings import settings

# Credentials embedded in manifest or time server URLs
_URL_CREDENTIALS = re.compile(r"://[^:/@\s]+:[^@\s]+@")


def redact_url_credentials(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Redact user:password pairs from any URL-looking string value."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = _URL_CREDENTIALS.sub("://***:***@", value)
    return event_dict


def add_service_context(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Stamp every event with the service name and environment."""
    event_dict.setdefault("service", "livecheck")
    event_dict.setdefault("env", settings.env)
    return event_dict


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """Configure structlog on top of the standard library logger."""
    level_name = (level or settings.log_level).upper()
    use_json = settings.log_json if json_output is None else json_output

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level_name, logging.INFO),
        force=True,
    )

    renderer: Any = (
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            redact_url_credentials,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
