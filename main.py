"""
Main entrypoint for Vibe Pulse.

  python main.py produce --venue v1     periodic vibe telemetry for one venue
  python main.py produce --venue v1 --once
  python main.py watch --interests venue,dining
                                        subscribe and log map clusters
  python main.py relay                  loopback relay (FastAPI + websocket)

Env: VIBE_API_BASE_URL, VIBE_REALTIME_URL, VIBE_HMAC_SECRET,
VIBE_TELEMETRY_ENABLED, VIBE_CADENCE_SEC, LOG_LEVEL, LOG_FORMAT, etc.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
from typing import Any

# Configure structured JSON logging before other imports that may log
from vibe_pulse.vibe_logging import get_logger

logger = get_logger("main")


def _wait_for_shutdown() -> None:
    """Block until SIGINT/SIGTERM."""
    stop = threading.Event()

    def _handle_sig(signum: int, frame: Any) -> None:
        logger.info("main_shutdown_signal", signal="SIGINT" if signum == signal.SIGINT else "SIGTERM")
        stop.set()

    signal.signal(signal.SIGINT, _handle_sig)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handle_sig)
    while not stop.wait(1.0):
        pass


def cmd_produce(args: argparse.Namespace) -> int:
    from vibe_pulse.config import get_settings
    from vibe_pulse.telemetry import HttpTransport, ProducerConfig, VibeProducer
    from vibe_pulse.telemetry.sensors import RandomSensor

    settings = get_settings()

    def gate() -> bool:
        return settings.telemetry_enabled or args.force

    if not gate():
        logger.error(
            "main_telemetry_disabled",
            message="Set VIBE_TELEMETRY_ENABLED=1 (or pass --force) to run the producer",
        )
        return 1
    try:
        config = ProducerConfig.from_settings(settings)
    except ValueError as e:
        logger.error("main_invalid_config", error=str(e))
        return 1
    transport = HttpTransport(settings.api_base_url, timeout_sec=settings.transport_timeout_sec)
    producer = VibeProducer(
        transport,
        audio_sensor=RandomSensor(args.seed),
        motion_sensor=RandomSensor(None if args.seed is None else args.seed + 1),
        gate=gate,
        shutdown_timeout_sec=settings.transport_timeout_sec + 1.0,
    )
    if args.once:
        envelope = producer.tick(args.venue, config)
        return 0 if envelope is not None else 1
    producer.start(args.venue, config)
    try:
        _wait_for_shutdown()
    finally:
        producer.stop()
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    from vibe_pulse.aggregation import RenderFrame, SpatialAggregationConsumer
    from vibe_pulse.config import get_settings
    from vibe_pulse.realtime import (
        DistributionChannel,
        SubscriptionFilter,
        WebSocketConfig,
        websocket_connection_factory,
    )

    settings = get_settings()
    channel = DistributionChannel(websocket_connection_factory(WebSocketConfig.from_settings(settings)))

    def _render(frame: RenderFrame) -> None:
        logger.info(
            "watch_frame",
            pulses=frame.pulse_count,
            markers=[
                {
                    "kind": c.marker_kind,
                    "text": c.marker_text,
                    "lat": round(c.centroid_lat, 5),
                    "lng": round(c.centroid_lng, 5),
                }
                for c in frame.clusters
            ],
            latest=frame.latest.venue_id if frame.latest else None,
        )

    consumer = SpatialAggregationConsumer.from_settings(settings, on_render=_render)
    consumer.attach(channel, SubscriptionFilter(interests=args.interests, lifestyles=args.lifestyles))
    try:
        _wait_for_shutdown()
    finally:
        consumer.close()
        channel.close()
    return 0


def cmd_relay(args: argparse.Namespace) -> int:
    import uvicorn

    from vibe_pulse.config import get_settings
    from vibe_pulse.relay.server import create_app

    settings = get_settings()
    host = args.host or settings.relay_host
    port = args.port or settings.relay_port
    logger.info("main_relay_starting", host=host, port=port, signed=bool(settings.hmac_secret))
    uvicorn.run(create_app(settings), host=host, port=port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vibe-pulse", description="Venue vibe telemetry tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("produce", help="Submit vibe readings for a venue on a fixed cadence")
    p.add_argument("--venue", required=True, help="Venue id")
    p.add_argument("--once", action="store_true", help="Run a single tick and exit")
    p.add_argument("--force", action="store_true", help="Ignore VIBE_TELEMETRY_ENABLED")
    p.add_argument("--seed", type=int, default=None, help="Seed for the placeholder sensors")
    p.set_defaults(func=cmd_produce)

    w = sub.add_parser("watch", help="Subscribe to vibe updates and log map clusters")
    w.add_argument("--interests", default="", help="Comma-separated interests")
    w.add_argument("--lifestyles", default="personalized", help="Comma-separated lifestyles")
    w.set_defaults(func=cmd_watch)

    r = sub.add_parser("relay", help="Run the loopback relay")
    r.add_argument("--host", default=None)
    r.add_argument("--port", type=int, default=None)
    r.set_defaults(func=cmd_relay)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
