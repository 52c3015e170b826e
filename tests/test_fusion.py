"""
Tests for sensor fusion (telemetry.fusion.fuse).
"""

from __future__ import annotations

import pytest

from vibe_pulse.telemetry.fusion import fuse

GRID = [i / 10 for i in range(11)]


def test_fuse_bounds_over_unit_grid():
    """For all a, m in [0, 1]: 0 <= score <= 10 and 0.7 <= confidence <= 1.0."""
    for a in GRID:
        for m in GRID:
            r = fuse(a, m)
            assert 0.0 <= r.score <= 10.0
            assert 0.7 <= r.confidence <= 1.0 + 1e-12


def test_fuse_weights():
    """Audio weighs 0.6, motion 0.4, scaled to 10."""
    assert fuse(1.0, 0.0).score == pytest.approx(6.0)
    assert fuse(0.0, 1.0).score == pytest.approx(4.0)
    assert fuse(0.5, 0.5).score == pytest.approx(5.0)
    assert fuse(1.0, 1.0).score == pytest.approx(10.0)


def test_fuse_confidence_tracks_weaker_signal():
    assert fuse(0.0, 1.0).confidence == pytest.approx(0.7)
    assert fuse(0.9, 0.5).confidence == pytest.approx(0.85)
    assert fuse(1.0, 1.0).confidence == pytest.approx(1.0)


def test_fuse_clamps_out_of_range_inputs():
    """Score is clamped even if a caller bypasses sensor validation."""
    assert fuse(2.0, 2.0).score == 10.0
    assert fuse(-1.0, -1.0).score == 0.0
