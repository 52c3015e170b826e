"""
Tests for the loopback relay (FastAPI TestClient, no network).
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from vibe_pulse.config import Settings
from vibe_pulse.relay.server import create_app
from vibe_pulse.relay.venues import VenueDirectory
from vibe_pulse.telemetry.models import VibeFeatures, VibeReading
from vibe_pulse.telemetry.signer import seal

SECRET = "s3cret"
VENUES = VenueDirectory.from_data({"v1": {"lat": 10.0, "lng": 20.0, "title": "Night Owl"}})


def _body(venue_id: str = "v1", score: float = 6.4) -> bytes:
    return VibeReading(
        venue_id=venue_id,
        score=score,
        confidence=0.9,
        sampled_at=datetime(2026, 3, 1, 21, 30, tzinfo=timezone.utc),
        features=VibeFeatures(audio_loudness=0.7, motion_energy=0.55, sample_duration_sec=5),
    ).serialize()


@pytest.fixture
def client():
    with TestClient(create_app(Settings(), VENUES)) as c:
        yield c


@pytest.fixture
def signed_client():
    with TestClient(create_app(Settings(hmac_secret=SECRET), VENUES)) as c:
        yield c


def _subscribe(ws, interests=(), lifestyles=()) -> list:
    assert ws.receive_json() == {"event": "hello", "data": {"ok": True}}
    ws.send_text(json.dumps({
        "event": "subscribe:insider",
        "data": {"interests": list(interests), "lifestyles": list(lifestyles)},
    }))
    ack = ws.receive_json()
    assert ack["event"] == "insider:subscribed"
    return ack["data"]["rooms"]


def test_health(client):
    assert client.get("/health").json() == {"ok": True, "connections": 0, "subscribers": 0}


def test_subscribe_joins_rooms(client):
    with client.websocket_connect("/ws") as ws:
        rooms = _subscribe(ws, interests=["venue"], lifestyles=["personalized"])
        assert rooms == ["insider:all", "insider:interest:venue", "insider:lifestyle:personalized"]
        assert client.get("/health").json()["subscribers"] == 1


def test_submission_is_broadcast_to_subscribers(client):
    with client.websocket_connect("/ws") as ws:
        _subscribe(ws)
        resp = client.post(
            "/api/venues/v1/vibe",
            content=_body(),
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 202
        assert resp.json() == {"venue_id": "v1", "delivered": 1, "signed": False}

        frame = ws.receive_json()
        assert frame["event"] == "vibe:update"
        data = frame["data"]
        assert data["venueId"] == "v1"
        assert data["score"] == 6.4
        assert (data["lat"], data["lng"], data["title"]) == (10.0, 20.0, "Night Owl")
        assert isinstance(data["ts"], int)


def test_unknown_venue_broadcasts_without_position(client):
    resp = client.post("/api/venues/v9/vibe", content=_body("v9"))
    assert resp.status_code == 202
    assert resp.json()["delivered"] == 0


def test_invalid_payload_rejected(client):
    assert client.post("/api/venues/v1/vibe", content=_body(score=11.0)).status_code == 400
    assert client.post("/api/venues/v1/vibe", content=b"not json").status_code == 400
    assert client.post("/api/venues/v1/vibe", content=_body("v2")).status_code == 400


def test_signed_submission_accepted(signed_client):
    envelope = seal("v1", _body(), SECRET)
    resp = signed_client.post("/api/venues/v1/vibe", content=envelope.body, headers=envelope.headers())
    assert resp.status_code == 202
    assert resp.json()["signed"] is True


def test_bad_or_missing_signature_rejected(signed_client):
    body = _body()
    assert signed_client.post("/api/venues/v1/vibe", content=body).status_code == 401
    resp = signed_client.post("/api/venues/v1/vibe", content=body, headers={"x-signature": "0" * 64})
    assert resp.status_code == 401
    tampered = seal("v1", body, SECRET)
    resp = signed_client.post(
        "/api/venues/v1/vibe",
        content=_body(score=9.9),
        headers={"x-signature": tampered.signature},
    )
    assert resp.status_code == 401


def test_venue_directory_load(tmp_path):
    path = tmp_path / "venues.json"
    path.write_text(json.dumps([{"id": "v1", "lat": 1.5, "lng": 2.5, "title": "A"}, {"lat": 3}, "junk"]))
    directory = VenueDirectory.load(path)
    assert len(directory) == 1
    assert directory.get("v1").lat == 1.5
    assert directory.get("missing").lat is None
    assert len(VenueDirectory.load(tmp_path / "absent.json")) == 0
