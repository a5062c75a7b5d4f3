"""Structured logging setup shared by the API and the CLI.

Library modules log through plain ``logging.getLogger(__name__)`` with
dotted event names and ``extra=`` fields; structlog renders those records
as JSON (default) or coloured console lines (``LOG_FORMAT=plain``).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Dict

import structlog

_LOGGING_INITIALISED = False

# Attributes every LogRecord carries; anything else came in via ``extra=``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


def _merge_record_extras(
    _: logging.Logger, __: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """Lift ``extra=`` fields from a stdlib record into the event dict."""
    record = event_dict.get("_record")
    if record is None:
        return event_dict
    for key, value in record.__dict__.items():
        if key not in _RECORD_ATTRS and not key.startswith("_"):
            event_dict.setdefault(key, value)
    return event_dict


def _build_pre_chain(log_format: str) -> list:
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        _merge_record_extras,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "plain":
        processors.append(structlog.processors.UnicodeDecoder())
    return processors


def _build_renderer(log_format: str):
    if log_format == "plain":
        return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(force: bool = False) -> None:
    """Route stdlib logging through structlog.  Safe to call repeatedly."""
    global _LOGGING_INITIALISED
    if _LOGGING_INITIALISED and not force:
        return

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = os.getenv("LOG_FORMAT", "json").strip().lower()
    if log_format not in {"json", "plain"}:
        log_format = "json"

    pre_chain = _build_pre_chain(log_format)
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _build_renderer(log_format),
        ],
        foreign_pre_chain=pre_chain,
    )

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    _LOGGING_INITIALISED = True
