"""
Data models for the distribution channel: inbound vibe updates and the
subscription filter announced to the remote side.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable

from vibe_pulse.core.exceptions import MalformedEvent

EVENT_VIBE_UPDATE = "vibe:update"
EVENT_SUBSCRIBE = "subscribe:insider"
EVENT_SUBSCRIBED = "insider:subscribed"
EVENT_HELLO = "hello"


def _finite_float(value: Any) -> float | None:
    """Return value as float when it is a finite real number (bools excluded), else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def _bounded(value: Any, limit: float) -> float | None:
    """Finite float within [-limit, limit]; out-of-range coordinates count as missing."""
    as_float = _finite_float(value)
    return as_float if as_float is not None and abs(as_float) <= limit else None


def _optional_int(value: Any) -> int | None:
    as_float = _finite_float(value)
    return int(as_float) if as_float is not None else None


@dataclass(frozen=True)
class VibeUpdateEvent:
    """
    One real-time vibe update (a "pulse").

    Coordinates and score are optional: a payload with missing, non-numeric or
    out-of-range lat/lng is still a valid event, it just cannot be placed on the map.
    timestamp is epoch milliseconds.
    """

    venue_id: str
    score: float | None = None
    lat: float | None = None
    lng: float | None = None
    timestamp: int | None = None
    title: str = ""

    @property
    def has_position(self) -> bool:
        return self.lat is not None and self.lng is not None

    @classmethod
    def from_payload(cls, payload: Any) -> "VibeUpdateEvent":
        """
        Build from a decoded vibe:update payload.

        Raises MalformedEvent when the payload is not an object or has no venue id.
        """
        if not isinstance(payload, Mapping):
            raise MalformedEvent(f"vibe update payload must be an object, got {type(payload).__name__}")
        venue_id = payload.get("venueId", payload.get("venue_id"))
        if isinstance(venue_id, bool) or not isinstance(venue_id, (str, int)):
            raise MalformedEvent("vibe update payload has no venueId")
        venue_id = str(venue_id).strip()
        if not venue_id:
            raise MalformedEvent("vibe update payload has an empty venueId")
        ts = payload.get("ts", payload.get("timestamp"))
        title = payload.get("title")
        return cls(
            venue_id=venue_id,
            score=_finite_float(payload.get("score")),
            lat=_bounded(payload.get("lat"), 90.0),
            lng=_bounded(payload.get("lng"), 180.0),
            timestamp=_optional_int(ts),
            title=title if isinstance(title, str) else "",
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "venueId": self.venue_id,
            "score": self.score,
            "lat": self.lat,
            "lng": self.lng,
            "ts": self.timestamp,
            "title": self.title,
        }


def _clean_tags(values: Iterable[str] | str | None) -> tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str):
        values = values.split(",")
    return tuple(v.strip() for v in values if isinstance(v, str) and v.strip())


@dataclass(frozen=True)
class SubscriptionFilter:
    """
    Interests and lifestyles announced with subscribe:insider.

    Advisory metadata for the remote side; the channel never filters locally.
    Accepts lists, tuples, or comma-separated strings; blanks are dropped.
    """

    interests: tuple[str, ...] = field(default_factory=tuple)
    lifestyles: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "interests", _clean_tags(self.interests))
        object.__setattr__(self, "lifestyles", _clean_tags(self.lifestyles))

    def to_payload(self) -> dict[str, list[str]]:
        return {"interests": list(self.interests), "lifestyles": list(self.lifestyles)}
