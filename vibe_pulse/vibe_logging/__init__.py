"""
Structured logging for Vibe Pulse.

JSON logs with timestamp, venue_id, event_type. Use get_logger() in all modules.
"""

from vibe_pulse.vibe_logging.logger import bind_venue, get_logger

__all__ = ["bind_venue", "get_logger"]
