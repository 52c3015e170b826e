"""
Data models for producer output.

VibeReading is built once per cadence tick and discarded after submission;
SignedEnvelope pairs its serialized body with the optional integrity tag.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from vibe_pulse.core.exceptions import SerializationFailure


@dataclass(frozen=True)
class VibeFeatures:
    """Raw normalized signals behind a reading, plus the sample window length."""

    audio_loudness: float
    motion_energy: float
    sample_duration_sec: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "audioLoudness": self.audio_loudness,
            "motionEnergy": self.motion_energy,
            "sampleDurationSec": self.sample_duration_sec,
        }


@dataclass(frozen=True)
class VibeReading:
    """
    One fused vibe reading for a venue.

    score is in [0, 10], confidence in [0, 1]; sampled_at is timezone-aware
    and serialized as ISO 8601 UTC.
    """

    venue_id: str
    score: float
    confidence: float
    sampled_at: datetime
    features: VibeFeatures

    def to_dict(self) -> dict[str, Any]:
        sampled_at = self.sampled_at
        if sampled_at.tzinfo is None:
            sampled_at = sampled_at.replace(tzinfo=timezone.utc)
        return {
            "venueId": self.venue_id,
            "score": self.score,
            "confidence": self.confidence,
            "sampledAt": sampled_at.astimezone(timezone.utc).isoformat(),
            "features": self.features.to_dict(),
        }

    def serialize(self) -> bytes:
        """
        Compact JSON wire form (stable key order, so identical readings give identical bytes).

        Raises SerializationFailure for values JSON cannot carry (NaN, infinity).
        """
        try:
            text = json.dumps(self.to_dict(), separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise SerializationFailure(f"cannot serialize vibe reading: {e}") from e
        return text.encode("utf-8")


@dataclass(frozen=True)
class SignedEnvelope:
    """Serialized reading plus signature; signature is None when no secret is configured."""

    venue_id: str
    body: bytes
    signature: str | None = None

    @property
    def is_signed(self) -> bool:
        return self.signature is not None

    def headers(self) -> dict[str, str]:
        """HTTP headers for submission: JSON content type and x-signature when signed."""
        out = {"Content-Type": "application/json"}
        if self.signature is not None:
            out["x-signature"] = self.signature
        return out
