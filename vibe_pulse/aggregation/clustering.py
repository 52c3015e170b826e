"""
Zoom-adaptive grid clustering of pulses for map display.

Cell size follows the visible span: cell = max(delta / divisor, min_cell) per
axis, so zooming out merges pulses and zooming in splits them, down to a floor
that stops over-fragmentation. Each pulse lands in cell
(floor(lat / cell_lat), floor(lng / cell_lng)).

Per cluster:
- centroid: arithmetic mean of member coordinates;
- label: the score of the first member in bucket order. Input is the
  newest-first buffer, so that is the most recent pulse in the cell. The label
  is intentionally not an aggregate, even though the position is.

recompute() is pure: same pulses and viewport give the same clusters, in order
of first appearance of each cell. Pulses without a finite latitude in [-90, 90]
and longitude in [-180, 180] are skipped.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

from vibe_pulse.config.settings import DEFAULT_CLUSTER_DIVISOR, DEFAULT_CLUSTER_MIN_CELL
from vibe_pulse.realtime.models import VibeUpdateEvent

MARKER_PULSE = "pulse"
MARKER_CLUSTER = "cluster"
LAT_LIMIT = 90.0
LNG_LIMIT = 180.0


@dataclass(frozen=True)
class Viewport:
    """Visible map region: center plus latitude/longitude span in degrees."""

    latitude: float
    longitude: float
    lat_delta: float
    lng_delta: float

    def same_span(self, other: "Viewport") -> bool:
        return self.lat_delta == other.lat_delta and self.lng_delta == other.lng_delta


@dataclass(frozen=True)
class GridConfig:
    """
    divisor: cells per visible span (granularity vs. marker count).
    min_cell: smallest cell edge in degrees.
    """

    divisor: float = DEFAULT_CLUSTER_DIVISOR
    min_cell: float = DEFAULT_CLUSTER_MIN_CELL

    def __post_init__(self) -> None:
        if self.divisor <= 0:
            raise ValueError("divisor must be positive")
        if self.min_cell <= 0:
            raise ValueError("min_cell must be positive")


@dataclass(frozen=True)
class Cluster:
    count: int
    centroid_lat: float
    centroid_lng: float
    label: str
    members: tuple[VibeUpdateEvent, ...]

    @property
    def marker_kind(self) -> str:
        """pulse for a lone member (shows its score), cluster otherwise (shows count)."""
        return MARKER_PULSE if self.count == 1 else MARKER_CLUSTER

    @property
    def marker_text(self) -> str:
        return self.label if self.count == 1 else str(self.count)


def cell_size(viewport: Viewport, grid: GridConfig | None = None) -> tuple[float, float]:
    g = grid or GridConfig()
    return (
        max(viewport.lat_delta / g.divisor, g.min_cell),
        max(viewport.lng_delta / g.divisor, g.min_cell),
    )


def cell_key(lat: float, lng: float, cell_lat: float, cell_lng: float) -> tuple[int, int]:
    return math.floor(lat / cell_lat), math.floor(lng / cell_lng)


def format_score(score: Any) -> str:
    """Shortest text for a score: 7.0 -> "7", 7.5 -> "7.5", missing -> ""."""
    if score is None or isinstance(score, bool) or not isinstance(score, (int, float)):
        return ""
    if isinstance(score, float):
        if not math.isfinite(score):
            return ""
        if score.is_integer():
            return str(int(score))
    return str(score)


def _coordinate(value: Any, limit: float) -> float | None:
    """Finite number within [-limit, limit], else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value) or abs(value) > limit:
        return None
    return value


def recompute(
    pulses: Sequence[VibeUpdateEvent],
    viewport: Viewport,
    grid: GridConfig | None = None,
) -> list[Cluster]:
    """Bucket pulses into grid cells and reduce each cell to a Cluster."""
    if not pulses:
        return []
    cell_lat, cell_lng = cell_size(viewport, grid)
    groups: dict[tuple[int, int], list[Any]] = {}
    for pulse in pulses:
        lat = _coordinate(getattr(pulse, "lat", None), LAT_LIMIT)
        lng = _coordinate(getattr(pulse, "lng", None), LNG_LIMIT)
        if lat is None or lng is None:
            continue
        try:
            key = cell_key(lat, lng, cell_lat, cell_lng)
        except (OverflowError, ValueError):
            # cell too small for the coordinate
            continue
        group = groups.get(key)
        if group is None:
            # [lat_sum, lng_sum, members]
            group = [0.0, 0.0, []]
            groups[key] = group
        group[0] += lat
        group[1] += lng
        group[2].append(pulse)

    clusters = []
    for lat_sum, lng_sum, members in groups.values():
        count = len(members)
        clusters.append(
            Cluster(
                count=count,
                centroid_lat=lat_sum / count,
                centroid_lng=lng_sum / count,
                label=format_score(members[0].score),
                members=tuple(members),
            )
        )
    return clusters
