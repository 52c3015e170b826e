"""
Transient "latest pulse" highlight.

Holds the most recent pulse for a fixed lifetime (3000 ms by default). A newer
pulse replaces it and restarts the countdown; nothing accumulates. On expiry
the value clears and on_change(None) is called from the timer thread.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

from vibe_pulse.config.settings import DEFAULT_HIGHLIGHT_TTL_MS
from vibe_pulse.realtime.models import VibeUpdateEvent


class LatestPulse:
    def __init__(
        self,
        ttl_ms: int = DEFAULT_HIGHLIGHT_TTL_MS,
        *,
        on_change: Callable[[VibeUpdateEvent | None], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_ms <= 0:
            raise ValueError("ttl_ms must be positive")
        self._ttl_sec = ttl_ms / 1000.0
        self._on_change = on_change
        self._clock = clock
        self._lock = threading.Lock()
        self._event: VibeUpdateEvent | None = None
        self._expires_at = 0.0
        self._generation = 0
        self._timer: threading.Timer | None = None

    @property
    def ttl_ms(self) -> int:
        return int(round(self._ttl_sec * 1000))

    def set(self, event: VibeUpdateEvent) -> None:
        """Show event and (re)start the expiry window."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._event = event
            self._expires_at = self._clock() + self._ttl_sec
            timer = threading.Timer(self._ttl_sec, self._expire, args=(self._generation,))
            timer.daemon = True
            self._timer = timer
            timer.start()

    def get(self) -> VibeUpdateEvent | None:
        """Current highlight; None once its window has passed, even if the timer has not fired yet."""
        with self._lock:
            if self._event is None or self._clock() >= self._expires_at:
                return None
            return self._event

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._event = None
            self._generation += 1

    def _expire(self, generation: int) -> None:
        with self._lock:
            # superseded by a newer set() or cancel()
            if generation != self._generation:
                return
            self._event = None
            self._timer = None
        if self._on_change is not None:
            self._on_change(None)
