"""
Physical connection to the remote event source.

Frames are JSON text messages {"event": <name>, "data": <payload>} over a
websocket. WebSocketConnection runs its own asyncio loop in a daemon thread:
connect, pump outbound frames and inbound events, and reconnect with
exponential backoff on failure. Inbound events are handed to a MessageSink
callback on the connection thread; reconnection state is not surfaced.
"""

from __future__ import annotations

import asyncio
import json
import threading
from dataclasses import dataclass
from typing import Any, Callable, Protocol

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from vibe_pulse.config.settings import (
    DEFAULT_RECONNECT_MAX_SEC,
    DEFAULT_RECONNECT_MIN_SEC,
    Settings,
)
from vibe_pulse.vibe_logging import get_logger

logger = get_logger(__name__)

MessageSink = Callable[[str, Any], None]

DEFAULT_WS_PING_INTERVAL = 30.0
DEFAULT_WS_PING_TIMEOUT = 10.0
DEFAULT_OUTBOUND_MAXSIZE = 256
_WS_CLOSE_TIMEOUT = 5.0
_OPEN_TIMEOUT_SEC = 5.0
_SHUTDOWN_JOIN_TIMEOUT_SEC = 10.0


class Connection(Protocol):
    def emit(self, event: str, payload: Any) -> None:
        ...

    def close(self) -> None:
        ...


ConnectionFactory = Callable[[MessageSink], Connection]


def encode_frame(event: str, payload: Any) -> str:
    return json.dumps({"event": event, "data": payload}, separators=(",", ":"))


def decode_frame(raw: str | bytes) -> tuple[str, Any] | None:
    """Parse one inbound frame into (event, data); None for anything that is not a named-event object."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    try:
        msg = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(msg, dict):
        return None
    event = msg.get("event")
    if not isinstance(event, str) or not event:
        return None
    return event, msg.get("data")


@dataclass
class WebSocketConfig:
    """Config for the distribution websocket."""

    url: str
    reconnect_min_sec: float = DEFAULT_RECONNECT_MIN_SEC
    reconnect_max_sec: float = DEFAULT_RECONNECT_MAX_SEC
    ws_ping_interval: float | None = DEFAULT_WS_PING_INTERVAL
    ws_ping_timeout: float | None = DEFAULT_WS_PING_TIMEOUT
    outbound_maxsize: int = DEFAULT_OUTBOUND_MAXSIZE

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebSocketConfig":
        return cls(
            url=settings.realtime_url,
            reconnect_min_sec=settings.reconnect_min_sec,
            reconnect_max_sec=settings.reconnect_max_sec,
        )


class WebSocketConnection:
    """
    One persistent websocket with auto-reconnect, driven from a background thread.

    emit() is thread-safe and never blocks: frames queue until a socket is up.
    A frame taken off the queue when the socket drops is lost (at-most-once).
    """

    def __init__(self, config: WebSocketConfig, on_message: MessageSink) -> None:
        if not config.url.strip():
            raise ValueError("url must be non-empty")
        self._config = config
        self._on_message = on_message
        self._loop: asyncio.AbstractEventLoop | None = None
        self._outbound: asyncio.Queue[str] | None = None
        self._stop: asyncio.Event | None = None
        self._ready = threading.Event()
        self._thread: threading.Thread | None = None
        self._closed = False

    def open(self) -> "WebSocketConnection":
        """Start the connection thread; returns once its event loop is ready."""
        if self._thread is not None:
            return self
        self._thread = threading.Thread(
            target=self._thread_main,
            name="vibe-channel-ws",
            daemon=True,
        )
        self._thread.start()
        if not self._ready.wait(timeout=_OPEN_TIMEOUT_SEC):
            logger.warning("channel_open_timeout", url=self._config.url)
        return self

    def emit(self, event: str, payload: Any) -> None:
        loop = self._loop
        if self._closed or loop is None:
            logger.debug("channel_emit_dropped", event_name=event, reason="not_open")
            return
        frame = encode_frame(event, payload)
        try:
            loop.call_soon_threadsafe(self._enqueue, frame)
        except RuntimeError:
            logger.debug("channel_emit_dropped", event_name=event, reason="loop_closed")

    def close(self) -> None:
        """Stop reconnecting and close the socket. Idempotent."""
        if self._closed:
            return
        self._closed = True
        loop, stop = self._loop, self._stop
        if loop is not None and stop is not None:
            try:
                loop.call_soon_threadsafe(stop.set)
            except RuntimeError:
                pass
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=_SHUTDOWN_JOIN_TIMEOUT_SEC)
        logger.info("channel_connection_closed", url=self._config.url)

    def _enqueue(self, frame: str) -> None:
        assert self._outbound is not None
        try:
            self._outbound.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning("channel_outbound_full_dropped", maxsize=self._config.outbound_maxsize)

    def _thread_main(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self._run())
        finally:
            loop.close()

    async def _run(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._outbound = asyncio.Queue(maxsize=self._config.outbound_maxsize)
        self._stop = asyncio.Event()
        self._ready.set()
        if self._closed:
            return
        backoff = self._config.reconnect_min_sec
        run_id = 0
        while not self._stop.is_set():
            run_id += 1
            try:
                logger.info("channel_connecting", run_id=run_id, url=self._config.url)
                async with websockets.connect(
                    self._config.url,
                    ping_interval=self._config.ws_ping_interval,
                    ping_timeout=self._config.ws_ping_timeout,
                    close_timeout=_WS_CLOSE_TIMEOUT,
                ) as ws:
                    backoff = self._config.reconnect_min_sec
                    logger.info("channel_connected", run_id=run_id)
                    await self._pump(ws)
            except asyncio.CancelledError:
                break
            except ConnectionClosed as e:
                logger.warning("channel_disconnected", run_id=run_id, reason=str(e))
            except (OSError, WebSocketException) as e:
                logger.warning("channel_connect_failed", run_id=run_id, error=str(e))
            except Exception as e:
                logger.exception("channel_error", run_id=run_id, error=str(e))

            if self._stop.is_set():
                break
            logger.info("channel_reconnect", run_id=run_id, backoff_sec=round(backoff, 1))
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=backoff)
            except asyncio.TimeoutError:
                pass
            backoff = min(backoff * 2, self._config.reconnect_max_sec)
        logger.info("channel_stopped", run_id=run_id)

    async def _pump(self, ws: Any) -> None:
        """Run sender, receiver, and stop watcher until the first one finishes."""
        assert self._stop is not None
        tasks = {
            asyncio.ensure_future(self._send_loop(ws)),
            asyncio.ensure_future(self._receive_loop(ws)),
            asyncio.ensure_future(self._stop.wait()),
        }
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def _send_loop(self, ws: Any) -> None:
        assert self._outbound is not None
        while True:
            frame = await self._outbound.get()
            await ws.send(frame)

    async def _receive_loop(self, ws: Any) -> None:
        async for raw in ws:
            decoded = decode_frame(raw)
            if decoded is None:
                logger.debug("channel_frame_skipped")
                continue
            event, data = decoded
            try:
                self._on_message(event, data)
            except Exception as e:
                logger.exception("channel_sink_error", event_name=event, error=str(e))


def websocket_connection_factory(config: WebSocketConfig) -> ConnectionFactory:
    """Factory for DistributionChannel: opens a WebSocketConnection bound to the channel's sink."""

    def _factory(on_message: MessageSink) -> Connection:
        return WebSocketConnection(config, on_message).open()

    return _factory
