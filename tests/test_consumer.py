"""
Tests for SpatialAggregationConsumer: buffering, render frames, viewport changes.
"""

from __future__ import annotations

import threading
from unittest import mock

from vibe_pulse.aggregation.clustering import GridConfig, Viewport
from vibe_pulse.aggregation.consumer import SpatialAggregationConsumer
from vibe_pulse.config import Settings
from vibe_pulse.realtime.models import SubscriptionFilter, VibeUpdateEvent

VIEW = Viewport(latitude=10.0, longitude=20.0, lat_delta=0.5, lng_delta=0.5)


def _ev(venue_id: str, lat=10.002, lng=20.002, score=5.0) -> VibeUpdateEvent:
    return VibeUpdateEvent(venue_id=venue_id, score=score, lat=lat, lng=lng)


def _consumer(frames, **kwargs) -> SpatialAggregationConsumer:
    kwargs.setdefault("viewport", VIEW)
    return SpatialAggregationConsumer(on_render=frames.append, **kwargs)


def test_event_publishes_frame_with_latest():
    frames = []
    consumer = _consumer(frames)
    try:
        consumer.on_event(_ev("a", score=7.0))
        frame = frames[-1]
        assert frame.pulse_count == 1
        assert frame.is_listening is False
        assert frame.latest.venue_id == "a"
        assert len(frame.clusters) == 1
        assert frame.clusters[0].marker_text == "7"
    finally:
        consumer.close()


def test_pulses_merge_and_label_uses_newest():
    frames = []
    consumer = _consumer(frames)
    try:
        consumer.on_event(_ev("old", lat=10.012, lng=20.012, score=3.0))
        consumer.on_event(_ev("new", lat=10.002, lng=20.002, score=8.0))
        clusters = frames[-1].clusters
        assert len(clusters) == 1
        assert clusters[0].count == 2
        assert clusters[0].label == "8"
        assert [p.venue_id for p in consumer.pulses()] == ["new", "old"]
    finally:
        consumer.close()


def test_buffer_bound_applies():
    frames = []
    consumer = _consumer(frames, capacity=3)
    try:
        for i in range(5):
            consumer.on_event(_ev(f"v{i}"))
        assert [p.venue_id for p in consumer.pulses()] == ["v4", "v3", "v2"]
        assert frames[-1].pulse_count == 3
    finally:
        consumer.close()


def test_zoom_recomputes_but_pan_does_not():
    frames = []
    consumer = _consumer(frames)
    try:
        consumer.on_event(_ev("a", lat=10.0001, lng=20.0001))
        consumer.on_event(_ev("b", lat=10.02, lng=20.02))
        assert len(frames[-1].clusters) == 1
        published = len(frames)

        panned = Viewport(latitude=10.3, longitude=20.3, lat_delta=0.5, lng_delta=0.5)
        assert consumer.set_viewport(panned) is False
        assert len(frames) == published
        assert consumer.viewport == panned

        zoomed = Viewport(latitude=10.0, longitude=20.0, lat_delta=0.02, lng_delta=0.02)
        assert consumer.set_viewport(zoomed) is True
        assert len(frames) == published + 1
        assert len(frames[-1].clusters) == 2
    finally:
        consumer.close()


def test_recompute_is_pure():
    frames = []
    consumer = _consumer(frames)
    try:
        consumer.on_event(_ev("a"))
        consumer.on_event(_ev("b", lat=10.3, lng=20.3))
        assert consumer.recompute() == consumer.recompute()
        assert consumer.recompute(Viewport(10.0, 20.0, 50.0, 50.0))[0].count == 2
    finally:
        consumer.close()


def test_render_callback_failure_is_contained():
    def broken(_frame):
        raise RuntimeError("map unavailable")

    consumer = SpatialAggregationConsumer(viewport=VIEW, on_render=broken)
    try:
        consumer.on_event(_ev("a"))
        assert len(consumer.pulses()) == 1
    finally:
        consumer.close()


def test_highlight_expiry_publishes_frame_without_latest():
    cleared = threading.Event()
    frames = []

    def on_render(frame):
        frames.append(frame)
        if frame.latest is None and frame.pulse_count:
            cleared.set()

    consumer = SpatialAggregationConsumer(viewport=VIEW, highlight_ttl_ms=50, on_render=on_render)
    try:
        consumer.on_event(_ev("a"))
        assert frames[0].latest is not None
        assert cleared.wait(2.0)
        assert consumer.latest is None
        assert frames[-1].pulse_count == 1
    finally:
        consumer.close()


def test_attach_through_channel(channel, connections):
    got = threading.Event()
    frames = []

    def on_render(frame):
        frames.append(frame)
        got.set()

    consumer = SpatialAggregationConsumer(viewport=VIEW, on_render=on_render)
    try:
        consumer.attach(channel, SubscriptionFilter(interests="venue"))
        assert connections[0].emitted[-1] == ("subscribe:insider", {"interests": ["venue"], "lifestyles": []})
        connections[0].push("vibe:update", {"venueId": "v1", "score": 6, "lat": 10.0, "lng": 20.0})
        assert got.wait(2.0)
        assert frames[-1].pulse_count == 1
        consumer.detach()
        assert channel.subscription_count == 0
    finally:
        consumer.close()


def test_from_settings():
    consumer = SpatialAggregationConsumer.from_settings(
        Settings(pulse_capacity=10, cluster_divisor=5.0, cluster_min_cell=0.01, highlight_ttl_ms=1000)
    )
    try:
        assert consumer.grid == GridConfig(divisor=5.0, min_cell=0.01)
        assert consumer.render_frame().is_listening is True
    finally:
        consumer.close()


def test_bad_coordinates_do_not_stall_publishing():
    frames = []
    consumer = _consumer(frames)
    try:
        consumer.on_event(VibeUpdateEvent(venue_id="bad", score=5.0, lat=1e308, lng=20.0))
        consumer.on_event(_ev("good", score=6.0))
        assert len(frames) == 2
        assert frames[-1].pulse_count == 2
        assert [c.members[0].venue_id for c in frames[-1].clusters] == ["good"]
    finally:
        consumer.close()


def test_frame_build_failure_is_contained():
    frames = []
    consumer = _consumer(frames)
    try:
        with mock.patch(
            "vibe_pulse.aggregation.consumer.recompute",
            side_effect=RuntimeError("grid failure"),
        ):
            consumer.on_event(_ev("a"))
        assert frames == []
        assert len(consumer.pulses()) == 1
        consumer.on_event(_ev("b"))
        assert frames[-1].pulse_count == 2
    finally:
        consumer.close()
