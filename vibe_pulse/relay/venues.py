"""
Venue directory for the relay: coordinates and titles keyed by venue id.

Loaded from a JSON file shaped either as {"<id>": {"lat", "lng", "title"}} or
as [{"id", "lat", "lng", "title"}, ...]. Entries that cannot be read are skipped.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from vibe_pulse.vibe_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class VenueLocation:
    venue_id: str
    lat: float | None = None
    lng: float | None = None
    title: str = ""


def _coord(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _entry(venue_id: Any, raw: Any) -> VenueLocation | None:
    if not isinstance(raw, dict) or venue_id in (None, ""):
        return None
    title = raw.get("title")
    return VenueLocation(
        venue_id=str(venue_id),
        lat=_coord(raw.get("lat")),
        lng=_coord(raw.get("lng")),
        title=title if isinstance(title, str) else "",
    )


class VenueDirectory:
    def __init__(self, venues: dict[str, VenueLocation] | None = None) -> None:
        self._venues = dict(venues or {})

    def __len__(self) -> int:
        return len(self._venues)

    def get(self, venue_id: str) -> VenueLocation:
        """Known location, or an entry with no coordinates and an empty title."""
        return self._venues.get(venue_id) or VenueLocation(venue_id=venue_id)

    @classmethod
    def from_data(cls, data: Any) -> "VenueDirectory":
        venues: dict[str, VenueLocation] = {}
        if isinstance(data, dict):
            items = list(data.items())
        elif isinstance(data, list):
            items = [(d.get("id") if isinstance(d, dict) else None, d) for d in data]
        else:
            items = []
        for venue_id, raw in items:
            loc = _entry(venue_id, raw)
            if loc is None:
                logger.debug("relay_venue_skipped", venue_id=str(venue_id))
                continue
            venues[loc.venue_id] = loc
        return cls(venues)

    @classmethod
    def load(cls, path: Path | None) -> "VenueDirectory":
        """Read path; a missing path or unreadable file gives an empty directory."""
        if path is None:
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("relay_venues_load_failed", path=str(path), error=str(e))
            return cls()
        directory = cls.from_data(data)
        logger.info("relay_venues_loaded", path=str(path), count=len(directory))
        return directory
