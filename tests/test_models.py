"""
Tests for telemetry and realtime data models.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from vibe_pulse.core.exceptions import MalformedEvent, SerializationFailure
from vibe_pulse.realtime.models import SubscriptionFilter, VibeUpdateEvent
from vibe_pulse.telemetry.models import VibeFeatures, VibeReading

SAMPLED_AT = datetime(2026, 3, 1, 21, 30, tzinfo=timezone.utc)


def _reading(**overrides) -> VibeReading:
    fields = dict(
        venue_id="v1",
        score=6.4,
        confidence=0.88,
        sampled_at=SAMPLED_AT,
        features=VibeFeatures(audio_loudness=0.7, motion_energy=0.55, sample_duration_sec=5),
    )
    fields.update(overrides)
    return VibeReading(**fields)


def test_reading_serialize_wire_shape():
    body = _reading().serialize()
    assert isinstance(body, bytes)
    data = json.loads(body)
    assert data == {
        "venueId": "v1",
        "score": 6.4,
        "confidence": 0.88,
        "sampledAt": "2026-03-01T21:30:00+00:00",
        "features": {"audioLoudness": 0.7, "motionEnergy": 0.55, "sampleDurationSec": 5},
    }
    assert b" " not in body


def test_reading_serialize_is_stable():
    assert _reading().serialize() == _reading().serialize()


def test_reading_naive_timestamp_treated_as_utc():
    naive = _reading(sampled_at=datetime(2026, 3, 1, 21, 30))
    assert json.loads(naive.serialize())["sampledAt"] == "2026-03-01T21:30:00+00:00"


def test_reading_nan_score_is_serialization_failure():
    with pytest.raises(SerializationFailure):
        _reading(score=float("nan")).serialize()


def test_update_from_payload_full():
    ev = VibeUpdateEvent.from_payload(
        {"venueId": "v9", "score": 7, "lat": 10.5, "lng": -3.25, "ts": 1700000000000, "title": "Bar"}
    )
    assert ev.venue_id == "v9"
    assert ev.score == 7.0
    assert ev.has_position
    assert ev.timestamp == 1700000000000
    assert ev.title == "Bar"
    assert VibeUpdateEvent.from_payload(ev.to_payload()) == ev


def test_update_without_coordinates_is_still_valid():
    ev = VibeUpdateEvent.from_payload({"venueId": "v1", "score": 5, "lat": "north", "lng": None})
    assert ev.lat is None
    assert ev.lng is None
    assert ev.has_position is False


def test_update_alternate_keys():
    ev = VibeUpdateEvent.from_payload({"venue_id": "v2", "timestamp": 12})
    assert ev.venue_id == "v2"
    assert ev.timestamp == 12
    assert ev.score is None


@pytest.mark.parametrize("payload", [None, "v1", [1, 2], {}, {"venueId": ""}, {"venueId": True}])
def test_update_malformed_payload(payload):
    with pytest.raises(MalformedEvent):
        VibeUpdateEvent.from_payload(payload)


def test_filter_cleans_tags():
    flt = SubscriptionFilter(interests="venue, dining,,", lifestyles=["personalized", " ", 3])
    assert flt.interests == ("venue", "dining")
    assert flt.lifestyles == ("personalized",)
    assert flt.to_payload() == {"interests": ["venue", "dining"], "lifestyles": ["personalized"]}


def test_filter_defaults_empty():
    assert SubscriptionFilter().to_payload() == {"interests": [], "lifestyles": []}


def test_update_out_of_range_coordinates_are_missing():
    ev = VibeUpdateEvent.from_payload({"venueId": "v1", "score": 5, "lat": 1e308, "lng": 200})
    assert ev.lat is None
    assert ev.lng is None
    edge = VibeUpdateEvent.from_payload({"venueId": "v1", "lat": -90, "lng": 180})
    assert (edge.lat, edge.lng) == (-90.0, 180.0)
