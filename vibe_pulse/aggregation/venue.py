"""
Single-venue score follower for a venue details view.

Keeps the latest numeric score reported for one venue; pulses for other
venues, or without a score, are ignored.
"""

from __future__ import annotations

import threading
from typing import Callable

from vibe_pulse.realtime.channel import DistributionChannel, Unsubscribe
from vibe_pulse.realtime.models import SubscriptionFilter, VibeUpdateEvent

PERSONALIZED_FILTER = SubscriptionFilter(lifestyles=("personalized",))


class VenueScoreTracker:
    def __init__(
        self,
        venue_id: str,
        on_change: Callable[[float], None] | None = None,
    ) -> None:
        if not venue_id or not venue_id.strip():
            raise ValueError("venue_id must be non-empty")
        self.venue_id = venue_id.strip()
        self._on_change = on_change
        self._lock = threading.Lock()
        self._score: float | None = None
        self._updated_at: int | None = None

    @property
    def score(self) -> float | None:
        with self._lock:
            return self._score

    @property
    def updated_at(self) -> int | None:
        with self._lock:
            return self._updated_at

    def attach(
        self,
        channel: DistributionChannel,
        flt: SubscriptionFilter = PERSONALIZED_FILTER,
    ) -> Unsubscribe:
        return channel.subscribe(flt, self.on_event)

    def on_event(self, update: VibeUpdateEvent) -> None:
        if update.venue_id != self.venue_id or update.score is None:
            return
        with self._lock:
            self._score = update.score
            self._updated_at = update.timestamp
        if self._on_change is not None:
            self._on_change(update.score)
