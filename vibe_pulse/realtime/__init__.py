# Real-time distribution: one shared connection, independent vibe:update subscriptions.

from vibe_pulse.realtime.channel import DistributionChannel, Unsubscribe, UpdateHandler
from vibe_pulse.realtime.connection import (
    Connection,
    ConnectionFactory,
    WebSocketConfig,
    WebSocketConnection,
    decode_frame,
    encode_frame,
    websocket_connection_factory,
)
from vibe_pulse.realtime.models import SubscriptionFilter, VibeUpdateEvent

__all__ = [
    "Connection",
    "ConnectionFactory",
    "DistributionChannel",
    "SubscriptionFilter",
    "Unsubscribe",
    "UpdateHandler",
    "VibeUpdateEvent",
    "WebSocketConfig",
    "WebSocketConnection",
    "decode_frame",
    "encode_frame",
    "websocket_connection_factory",
]
