"""
Bounded, newest-first pulse buffer.

push() prepends; once capacity is reached the oldest pulse falls off the end.
Writes are serialized with a lock so the bound holds with concurrent writers.
"""

from __future__ import annotations

import threading
from collections import deque

from vibe_pulse.config.settings import DEFAULT_PULSE_CAPACITY
from vibe_pulse.realtime.models import VibeUpdateEvent


class PulseBuffer:
    """In-memory window of the most recent pulses (newest first)."""

    def __init__(self, capacity: int = DEFAULT_PULSE_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._items: deque[VibeUpdateEvent] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def push(self, event: VibeUpdateEvent) -> VibeUpdateEvent | None:
        """Prepend event; return the evicted oldest pulse, if any."""
        with self._lock:
            evicted = self._items[-1] if len(self._items) == self._capacity else None
            self._items.appendleft(event)
            return evicted

    def snapshot(self) -> tuple[VibeUpdateEvent, ...]:
        """Immutable copy, newest first."""
        with self._lock:
            return tuple(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
