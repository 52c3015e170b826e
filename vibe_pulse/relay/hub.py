"""
Websocket subscriber registry for the relay.

Each socket joins rooms when it sends subscribe:insider: insider:all plus one
room per interest and lifestyle. Broadcasts go to insider:all; a socket gets
each event once, however many rooms it is in.
"""

from __future__ import annotations

from typing import Any

from fastapi import WebSocket

from vibe_pulse.realtime.connection import encode_frame
from vibe_pulse.realtime.models import EVENT_HELLO, SubscriptionFilter
from vibe_pulse.vibe_logging import get_logger

logger = get_logger(__name__)

ROOM_ALL = "insider:all"


def rooms_for(flt: SubscriptionFilter) -> list[str]:
    rooms = [ROOM_ALL]
    rooms.extend(f"insider:interest:{interest}" for interest in flt.interests)
    rooms.extend(f"insider:lifestyle:{lifestyle}" for lifestyle in flt.lifestyles)
    return rooms


class SubscriberHub:
    def __init__(self) -> None:
        self._rooms: dict[WebSocket, set[str]] = {}

    @property
    def connection_count(self) -> int:
        return len(self._rooms)

    def subscriber_count(self, room: str = ROOM_ALL) -> int:
        return sum(1 for rooms in self._rooms.values() if room in rooms)

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        self._rooms[ws] = set()
        await ws.send_text(encode_frame(EVENT_HELLO, {"ok": True}))
        logger.info("relay_socket_connected", connections=len(self._rooms))

    def join(self, ws: WebSocket, flt: SubscriptionFilter) -> list[str]:
        """Add ws to the rooms for flt; returns every room ws is now in (sorted)."""
        joined = self._rooms.setdefault(ws, set())
        joined.update(rooms_for(flt))
        return sorted(joined)

    def disconnect(self, ws: WebSocket) -> None:
        if self._rooms.pop(ws, None) is not None:
            logger.info("relay_socket_disconnected", connections=len(self._rooms))

    async def broadcast(self, event: str, payload: Any, room: str = ROOM_ALL) -> int:
        """Send one frame to every socket in room; sockets that fail are dropped. Returns deliveries."""
        frame = encode_frame(event, payload)
        delivered = 0
        for ws in [w for w, rooms in self._rooms.items() if room in rooms]:
            try:
                await ws.send_text(frame)
                delivered += 1
            except Exception as e:
                logger.warning("relay_broadcast_failed", error=str(e))
                self.disconnect(ws)
        return delivered
