# Spatial aggregation: bounded pulse buffer, grid clustering, latest-pulse highlight.

from vibe_pulse.aggregation.buffer import PulseBuffer
from vibe_pulse.aggregation.clustering import (
    Cluster,
    GridConfig,
    Viewport,
    cell_size,
    format_score,
    recompute,
)
from vibe_pulse.aggregation.consumer import (
    DEFAULT_VIEWPORT,
    RenderFrame,
    SpatialAggregationConsumer,
)
from vibe_pulse.aggregation.highlight import LatestPulse
from vibe_pulse.aggregation.venue import VenueScoreTracker

__all__ = [
    "Cluster",
    "DEFAULT_VIEWPORT",
    "GridConfig",
    "LatestPulse",
    "PulseBuffer",
    "RenderFrame",
    "SpatialAggregationConsumer",
    "VenueScoreTracker",
    "Viewport",
    "cell_size",
    "format_score",
    "recompute",
]
