"""
Sensor collaborators for the producer.

A sensor returns one normalized reading in [0, 1] per call. Real audio and
motion sampling live on the device; RandomSensor stands in for them the way
the mobile client does before hardware sampling is wired up.
"""

from __future__ import annotations

import math
import random
from typing import Callable, Protocol

from vibe_pulse.core.exceptions import SamplingFailure


class Sensor(Protocol):
    def sample(self) -> float:
        ...


class RandomSensor:
    """Uniform placeholder sampler; seedable for reproducible runs."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)

    def sample(self) -> float:
        return self._rng.random()


class FixedSensor:
    """Always returns the same value (tests, calibration)."""

    def __init__(self, value: float) -> None:
        self.value = value

    def sample(self) -> float:
        return self.value


class CallableSensor:
    """Adapts a plain zero-argument callable to the Sensor protocol."""

    def __init__(self, fn: Callable[[], float]) -> None:
        self._fn = fn

    def sample(self) -> float:
        return self._fn()


def read_normalized(sensor: Sensor, name: str) -> float:
    """
    Sample once and check the result is a finite number in [0, 1].

    Any sensor exception or out-of-range value becomes SamplingFailure.
    """
    try:
        value = sensor.sample()
    except SamplingFailure:
        raise
    except Exception as e:
        raise SamplingFailure(f"{name} sensor failed: {e}") from e
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SamplingFailure(f"{name} sensor returned non-numeric value {value!r}")
    value = float(value)
    if not math.isfinite(value) or value < 0.0 or value > 1.0:
        raise SamplingFailure(f"{name} sensor returned {value!r}, expected [0, 1]")
    return value
