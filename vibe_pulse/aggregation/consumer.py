"""
Spatial aggregation consumer: buffers pulses and publishes map clusters.

Subscribes through the distribution channel, prepends each pulse to a bounded
buffer, and recomputes the grid clustering from scratch whenever the buffer or
the viewport span changes. Each recomputation is published to the render
callback as a RenderFrame (clusters plus the transient latest pulse). No
cluster state is carried from one recomputation to the next.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable

from vibe_pulse.aggregation.buffer import PulseBuffer
from vibe_pulse.aggregation.clustering import Cluster, GridConfig, Viewport, recompute
from vibe_pulse.aggregation.highlight import LatestPulse
from vibe_pulse.config.settings import (
    DEFAULT_HIGHLIGHT_TTL_MS,
    DEFAULT_PULSE_CAPACITY,
    Settings,
)
from vibe_pulse.realtime.channel import DistributionChannel, Unsubscribe
from vibe_pulse.realtime.models import SubscriptionFilter, VibeUpdateEvent
from vibe_pulse.vibe_logging import get_logger

logger = get_logger(__name__)

# Initial region before the device location is known
DEFAULT_VIEWPORT = Viewport(latitude=37.7749, longitude=-122.4194, lat_delta=0.05, lng_delta=0.05)


@dataclass(frozen=True)
class RenderFrame:
    """What the map layer draws: one marker per cluster plus the latest-pulse highlight."""

    clusters: tuple[Cluster, ...]
    latest: VibeUpdateEvent | None
    viewport: Viewport
    pulse_count: int

    @property
    def is_listening(self) -> bool:
        """True while no pulse has been buffered yet."""
        return self.pulse_count == 0


RenderCallback = Callable[[RenderFrame], None]


class SpatialAggregationConsumer:
    """
    One consumer owns one PulseBuffer.

    Args:
        viewport: Initial visible region.
        grid: Cell sizing parameters (divisor, floor).
        capacity: Pulse buffer bound.
        highlight_ttl_ms: Lifetime of the latest-pulse highlight.
        on_render: Called with a RenderFrame after every recomputation.
    """

    def __init__(
        self,
        *,
        viewport: Viewport = DEFAULT_VIEWPORT,
        grid: GridConfig | None = None,
        capacity: int = DEFAULT_PULSE_CAPACITY,
        highlight_ttl_ms: int = DEFAULT_HIGHLIGHT_TTL_MS,
        on_render: RenderCallback | None = None,
    ) -> None:
        self._viewport = viewport
        self._grid = grid or GridConfig()
        self._buffer = PulseBuffer(capacity)
        self._latest = LatestPulse(highlight_ttl_ms, on_change=self._on_highlight_change)
        self._on_render = on_render
        self._lock = threading.RLock()
        self._unsubscribe: Unsubscribe | None = None
        self._first_pulse_seen = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        viewport: Viewport = DEFAULT_VIEWPORT,
        on_render: RenderCallback | None = None,
    ) -> "SpatialAggregationConsumer":
        return cls(
            viewport=viewport,
            grid=GridConfig(divisor=settings.cluster_divisor, min_cell=settings.cluster_min_cell),
            capacity=settings.pulse_capacity,
            highlight_ttl_ms=settings.highlight_ttl_ms,
            on_render=on_render,
        )

    @property
    def viewport(self) -> Viewport:
        return self._viewport

    @property
    def grid(self) -> GridConfig:
        return self._grid

    @property
    def latest(self) -> VibeUpdateEvent | None:
        return self._latest.get()

    def pulses(self) -> tuple[VibeUpdateEvent, ...]:
        """Buffered pulses, newest first."""
        return self._buffer.snapshot()

    def attach(
        self,
        channel: DistributionChannel,
        flt: SubscriptionFilter | None = None,
    ) -> Unsubscribe:
        """Subscribe this consumer to channel; replaces any earlier attachment."""
        self.detach()
        unsubscribe = channel.subscribe(flt, self.on_event)
        self._unsubscribe = unsubscribe
        return unsubscribe

    def detach(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()

    def close(self) -> None:
        self.detach()
        self._latest.cancel()

    def on_event(self, update: VibeUpdateEvent) -> None:
        """Prepend update to the buffer, restart the highlight, and publish a fresh frame."""
        with self._lock:
            evicted = self._buffer.push(update)
            if not self._first_pulse_seen:
                self._first_pulse_seen = True
                logger.info("vibe_first_pulse", venue_id=update.venue_id)
            if evicted is not None:
                logger.debug("pulse_evicted", venue_id=evicted.venue_id)
            self._latest.set(update)
            self._publish()

    def set_viewport(self, viewport: Viewport) -> bool:
        """
        Move the map. Returns True when the span changed and clusters were recomputed;
        panning at the same zoom only updates the stored center.
        """
        with self._lock:
            span_changed = not viewport.same_span(self._viewport)
            self._viewport = viewport
            if span_changed:
                self._publish()
            return span_changed

    def recompute(self, viewport: Viewport | None = None) -> list[Cluster]:
        """Clusters for the current buffer under viewport (default: current viewport)."""
        return recompute(self._buffer.snapshot(), viewport or self._viewport, self._grid)

    def render_frame(self) -> RenderFrame:
        pulses = self._buffer.snapshot()
        return RenderFrame(
            clusters=tuple(recompute(pulses, self._viewport, self._grid)),
            latest=self._latest.get(),
            viewport=self._viewport,
            pulse_count=len(pulses),
        )

    def _publish(self) -> None:
        with self._lock:
            try:
                frame = self.render_frame()
            except Exception as e:
                logger.exception("render_frame_failed", pulses=len(self._buffer), error=str(e))
                return
            if self._on_render is None:
                return
            try:
                self._on_render(frame)
            except Exception as e:
                logger.exception("render_callback_error", error=str(e))

    def _on_highlight_change(self, _latest: VibeUpdateEvent | None) -> None:
        self._publish()
