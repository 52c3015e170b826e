"""
structlog setup shared by the producer, channel, consumer, and relay.

Each line is one JSON object keyed by event_type (the snake_case name passed
as the first argument), with level, ISO timestamp, the module as logger, and
whatever context the call site adds (venue_id, subscription_id, run_id, ...).
LOG_FORMAT=console switches to structlog's dev renderer.

Imports nothing from vibe_pulse, so any module can import it first.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

EventDict = dict[str, Any]


def _add_timestamp(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """structlog's positional 'event' becomes event_type; message mirrors it unless given."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "event_type" in event_dict:
        event_dict.setdefault("message", str(event_dict["event_type"]))
    return event_dict


def _renderer() -> Any:
    if LOG_FORMAT == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _add_timestamp,
            _event_type,
            _renderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Logger bound to name (usually __name__).

        logger = get_logger(__name__)
        logger.warning("producer_submit_failed", venue_id="v1", status_code=503)

    renders as {"event_type": "producer_submit_failed", "venue_id": "v1",
    "status_code": 503, "level": "warning", "logger": "...", "timestamp": "..."}.
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_venue(venue_id: str, name: str = "vibe_pulse") -> structlog.BoundLogger:
    """get_logger(name) with venue_id attached to every call."""
    return get_logger(name).bind(venue_id=venue_id)
