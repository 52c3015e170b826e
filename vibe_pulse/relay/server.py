"""
Loopback relay: local development gateway for the vibe transport contract.

Accepts POST /api/venues/{venue_id}/vibe, checks x-signature against the raw
body when a secret is configured, validates the reading, and rebroadcasts its
score as a vibe:update frame to websocket clients on /ws that have sent
subscribe:insider. Coordinates and titles come from the venue directory.
The relay does not fuse, store, or rescore anything.

Run: uvicorn vibe_pulse.relay.server:app --port 3001
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Any

from fastapi import FastAPI, Header, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vibe_pulse.config.settings import Settings, get_settings
from vibe_pulse.realtime.connection import decode_frame, encode_frame
from vibe_pulse.realtime.models import (
    EVENT_SUBSCRIBE,
    EVENT_SUBSCRIBED,
    EVENT_VIBE_UPDATE,
    SubscriptionFilter,
    VibeUpdateEvent,
)
from vibe_pulse.relay.hub import SubscriberHub
from vibe_pulse.relay.venues import VenueDirectory
from vibe_pulse.telemetry.signer import verify
from vibe_pulse.vibe_logging import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Request / response models
# -----------------------------------------------------------------------------

class VibeFeaturesIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audio_loudness: float = Field(..., ge=0, le=1, alias="audioLoudness")
    motion_energy: float = Field(..., ge=0, le=1, alias="motionEnergy")
    sample_duration_sec: int = Field(..., gt=0, alias="sampleDurationSec")


class VibeReadingIn(BaseModel):
    """POST /api/venues/{venue_id}/vibe body: one serialized VibeReading."""

    model_config = ConfigDict(populate_by_name=True)

    venue_id: str | None = Field(None, alias="venueId")
    score: float = Field(..., ge=0, le=10, description="Fused vibe score (0–10)")
    confidence: float = Field(..., ge=0, le=1)
    sampled_at: datetime = Field(..., alias="sampledAt")
    features: VibeFeaturesIn


class VibeAccepted(BaseModel):
    venue_id: str = Field(..., description="Venue the reading was accepted for")
    delivered: int = Field(..., description="Websocket subscribers the update was sent to")
    signed: bool = Field(..., description="True if the request carried a verified signature")


def _tags(data: Any, key: str) -> list[str]:
    value = data.get(key) if isinstance(data, dict) else None
    return [v for v in value if isinstance(v, str)] if isinstance(value, list) else []


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------

def create_app(
    settings: Settings | None = None,
    directory: VenueDirectory | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Vibe Pulse relay", version="0.1.0")
    app.state.settings = settings
    app.state.hub = SubscriberHub()
    app.state.venues = directory if directory is not None else VenueDirectory.load(settings.venues_path)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        hub: SubscriberHub = app.state.hub
        return {"ok": True, "connections": hub.connection_count, "subscribers": hub.subscriber_count()}

    @app.post("/api/venues/{venue_id}/vibe", status_code=202, response_model=VibeAccepted)
    async def submit_vibe(
        venue_id: str,
        request: Request,
        x_signature: str | None = Header(default=None),
    ) -> VibeAccepted:
        body = await request.body()
        secret = app.state.settings.hmac_secret
        if secret and not verify(secret, body, x_signature):
            logger.warning("relay_signature_rejected", venue_id=venue_id, has_signature=bool(x_signature))
            raise HTTPException(status_code=401, detail="invalid signature")
        try:
            reading = VibeReadingIn.model_validate_json(body)
        except ValidationError as e:
            logger.warning("relay_invalid_payload", venue_id=venue_id, errors=e.error_count())
            raise HTTPException(status_code=400, detail="invalid vibe payload")
        if reading.venue_id is not None and reading.venue_id != venue_id:
            raise HTTPException(status_code=400, detail="venueId does not match path")

        location = app.state.venues.get(venue_id)
        update = VibeUpdateEvent(
            venue_id=venue_id,
            score=reading.score,
            lat=location.lat,
            lng=location.lng,
            timestamp=int(time.time() * 1000),
            title=location.title,
        )
        delivered = await app.state.hub.broadcast(EVENT_VIBE_UPDATE, update.to_payload())
        logger.info(
            "relay_vibe_accepted",
            venue_id=venue_id,
            score=reading.score,
            delivered=delivered,
            signed=bool(secret),
        )
        return VibeAccepted(venue_id=venue_id, delivered=delivered, signed=bool(secret))

    @app.websocket("/ws")
    async def insider_socket(ws: WebSocket) -> None:
        hub: SubscriberHub = app.state.hub
        await hub.connect(ws)
        try:
            while True:
                decoded = decode_frame(await ws.receive_text())
                if decoded is None:
                    continue
                event, data = decoded
                if event != EVENT_SUBSCRIBE:
                    logger.debug("relay_event_ignored", event_name=event)
                    continue
                flt = SubscriptionFilter(
                    interests=_tags(data, "interests"),
                    lifestyles=_tags(data, "lifestyles"),
                )
                rooms = hub.join(ws, flt)
                await ws.send_text(encode_frame(EVENT_SUBSCRIBED, {"rooms": rooms}))
        except WebSocketDisconnect:
            pass
        finally:
            hub.disconnect(ws)

    return app


app = create_app()
