"""
Environment variable loading and parsing for Vibe Pulse.

- VIBE_API_BASE_URL: base URL of the HTTP gateway (telemetry submissions)
- VIBE_REALTIME_URL: websocket URL of the distribution channel
- VIBE_HMAC_SECRET: pre-shared signing secret (unset: readings go unsigned)
- VIBE_TELEMETRY_ENABLED: gating flag for the producer (default: false)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is vibe_pulse/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_API_BASE_URL = "http://localhost:3001/api"
DEFAULT_REALTIME_URL = "ws://localhost:3001/ws"

_TRUTHY = ("1", "true", "yes", "on")


def load_vibe_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides the process env."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "") -> str:
    load_vibe_env()
    return (os.getenv(name) or default).strip()


def env_bool(name: str, default: bool = False) -> bool:
    load_vibe_env()
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


def env_float(name: str, default: float) -> float:
    """Parse a float env var; empty or unparsable values fall back to default."""
    load_vibe_env()
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_int(name: str, default: int) -> int:
    load_vibe_env()
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_hmac_secret() -> str | None:
    """
    Return VIBE_HMAC_SECRET, or None when unset/blank.
    There is no fallback secret: an absent secret disables signing.
    """
    secret = env_str("VIBE_HMAC_SECRET")
    return secret or None


def telemetry_enabled() -> bool:
    """Gating flag: the producer only runs when VIBE_TELEMETRY_ENABLED is truthy."""
    return env_bool("VIBE_TELEMETRY_ENABLED", default=False)


def get_venues_path() -> Path | None:
    raw = env_str("VIBE_VENUES_PATH")
    return Path(raw) if raw else None
