"""
Fusion of two normalized sensor signals into a vibe score and confidence.

Pure and deterministic. score = clamp(0, 10, (0.6 * audio + 0.4 * motion) * 10);
confidence = 0.7 + 0.3 * min(audio, motion). For inputs in [0, 1] the score
stays in [0, 10] and confidence in [0.7, 1.0].
"""

from __future__ import annotations

from dataclasses import dataclass

AUDIO_WEIGHT = 0.6
MOTION_WEIGHT = 0.4
SCORE_SCALE = 10.0
SCORE_MIN = 0.0
SCORE_MAX = 10.0
CONFIDENCE_BASE = 0.7
CONFIDENCE_SPAN = 0.3


@dataclass(frozen=True)
class FusionResult:
    score: float
    confidence: float


def _clamp(low: float, high: float, value: float) -> float:
    return max(low, min(high, value))


def fuse(audio_loudness: float, motion_energy: float) -> FusionResult:
    """Combine normalized audio loudness and motion energy into a score (0–10) and confidence."""
    raw = (AUDIO_WEIGHT * audio_loudness + MOTION_WEIGHT * motion_energy) * SCORE_SCALE
    score = _clamp(SCORE_MIN, SCORE_MAX, raw)
    confidence = CONFIDENCE_BASE + CONFIDENCE_SPAN * min(audio_loudness, motion_energy)
    return FusionResult(score=score, confidence=confidence)
