"""
Application settings.

Builds one typed, immutable Settings object from the environment (see env.py)
for the producer, distribution channel, aggregation consumer, and relay.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from vibe_pulse.config.env import (
    DEFAULT_API_BASE_URL,
    DEFAULT_REALTIME_URL,
    env_float,
    env_int,
    env_str,
    get_hmac_secret,
    get_venues_path,
    telemetry_enabled,
)

DEFAULT_CADENCE_SEC = 120.0
DEFAULT_SAMPLE_DURATION_SEC = 5
DEFAULT_TRANSPORT_TIMEOUT_SEC = 10.0
DEFAULT_PULSE_CAPACITY = 200
DEFAULT_CLUSTER_DIVISOR = 20.0
DEFAULT_CLUSTER_MIN_CELL = 0.0025
DEFAULT_HIGHLIGHT_TTL_MS = 3000
DEFAULT_RECONNECT_MIN_SEC = 1.0
DEFAULT_RECONNECT_MAX_SEC = 60.0
DEFAULT_RELAY_HOST = "0.0.0.0"
DEFAULT_RELAY_PORT = 3001


@dataclass(frozen=True)
class Settings:
    """Service configuration; one instance per process, read from env by get_settings()."""

    api_base_url: str = DEFAULT_API_BASE_URL
    realtime_url: str = DEFAULT_REALTIME_URL
    hmac_secret: str | None = None
    telemetry_enabled: bool = False
    cadence_sec: float = DEFAULT_CADENCE_SEC
    sample_duration_sec: int = DEFAULT_SAMPLE_DURATION_SEC
    transport_timeout_sec: float = DEFAULT_TRANSPORT_TIMEOUT_SEC
    pulse_capacity: int = DEFAULT_PULSE_CAPACITY
    cluster_divisor: float = DEFAULT_CLUSTER_DIVISOR
    cluster_min_cell: float = DEFAULT_CLUSTER_MIN_CELL
    highlight_ttl_ms: int = DEFAULT_HIGHLIGHT_TTL_MS
    reconnect_min_sec: float = DEFAULT_RECONNECT_MIN_SEC
    reconnect_max_sec: float = DEFAULT_RECONNECT_MAX_SEC
    relay_host: str = DEFAULT_RELAY_HOST
    relay_port: int = DEFAULT_RELAY_PORT
    venues_path: Path | None = None


def get_settings() -> Settings:
    """
    Return the current application settings.

    Reads the environment on every call (cheap); callers that need a stable
    view should keep the returned object.
    """
    return Settings(
        api_base_url=env_str("VIBE_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/"),
        realtime_url=env_str("VIBE_REALTIME_URL", DEFAULT_REALTIME_URL),
        hmac_secret=get_hmac_secret(),
        telemetry_enabled=telemetry_enabled(),
        cadence_sec=env_float("VIBE_CADENCE_SEC", DEFAULT_CADENCE_SEC),
        sample_duration_sec=env_int("VIBE_SAMPLE_DURATION_SEC", DEFAULT_SAMPLE_DURATION_SEC),
        transport_timeout_sec=env_float("VIBE_TRANSPORT_TIMEOUT_SEC", DEFAULT_TRANSPORT_TIMEOUT_SEC),
        pulse_capacity=env_int("VIBE_PULSE_CAPACITY", DEFAULT_PULSE_CAPACITY),
        cluster_divisor=env_float("VIBE_CLUSTER_DIVISOR", DEFAULT_CLUSTER_DIVISOR),
        cluster_min_cell=env_float("VIBE_CLUSTER_MIN_CELL", DEFAULT_CLUSTER_MIN_CELL),
        highlight_ttl_ms=env_int("VIBE_HIGHLIGHT_TTL_MS", DEFAULT_HIGHLIGHT_TTL_MS),
        reconnect_min_sec=env_float("VIBE_RECONNECT_MIN_SEC", DEFAULT_RECONNECT_MIN_SEC),
        reconnect_max_sec=env_float("VIBE_RECONNECT_MAX_SEC", DEFAULT_RECONNECT_MAX_SEC),
        relay_host=env_str("VIBE_RELAY_HOST", DEFAULT_RELAY_HOST),
        relay_port=env_int("VIBE_RELAY_PORT", DEFAULT_RELAY_PORT),
        venues_path=get_venues_path(),
    )
