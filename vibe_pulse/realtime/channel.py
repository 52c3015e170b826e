"""
Distribution channel: one shared connection, many independent subscriptions.

The channel is owned explicitly: build it once at process start and pass it
to every subscriber. get_connection() opens the physical connection lazily
on first use and returns that same connection afterwards.

subscribe() registers a vibe:update handler and announces the filter with
subscribe:insider. The returned unsubscribe callable removes only that
registration; it never closes the shared connection. Every subscription has
its own mailbox and worker thread, so a slow or failing handler does not
hold up delivery to the others. Delivery is at-most-once in arrival order,
with no replay, dedup, batching, or local filtering.
"""

from __future__ import annotations

import itertools
import queue
import threading
from typing import Any, Callable

from vibe_pulse.core.exceptions import MalformedEvent
from vibe_pulse.realtime.connection import Connection, ConnectionFactory
from vibe_pulse.realtime.models import (
    EVENT_HELLO,
    EVENT_SUBSCRIBE,
    EVENT_SUBSCRIBED,
    EVENT_VIBE_UPDATE,
    SubscriptionFilter,
    VibeUpdateEvent,
)
from vibe_pulse.vibe_logging import get_logger

logger = get_logger(__name__)

UpdateHandler = Callable[[VibeUpdateEvent], None]
Unsubscribe = Callable[[], None]

_STOP = object()


class _Subscription:
    """One registered handler with its own delivery worker."""

    def __init__(self, sub_id: int, flt: SubscriptionFilter, handler: UpdateHandler) -> None:
        self.id = sub_id
        self.filter = flt
        self._handler = handler
        self._mailbox: queue.SimpleQueue[Any] = queue.SimpleQueue()
        self._active = threading.Event()
        self._worker = threading.Thread(
            target=self._drain,
            name=f"vibe-sub-{sub_id}",
            daemon=True,
        )

    @property
    def active(self) -> bool:
        return self._active.is_set()

    def start(self) -> None:
        self._active.set()
        self._worker.start()

    def offer(self, update: VibeUpdateEvent) -> None:
        if self._active.is_set():
            self._mailbox.put(update)

    def cancel(self) -> None:
        self._active.clear()
        self._mailbox.put(_STOP)

    def _drain(self) -> None:
        while True:
            item = self._mailbox.get()
            if item is _STOP or not self._active.is_set():
                return
            try:
                self._handler(item)
            except Exception as e:
                logger.exception(
                    "channel_handler_error",
                    subscription_id=self.id,
                    venue_id=item.venue_id,
                    error=str(e),
                )


class DistributionChannel:
    """
    Shared real-time channel.

    Args:
        connection_factory: Called once, with the channel's inbound sink, to
            open the physical connection (see websocket_connection_factory).
    """

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self._factory = connection_factory
        self._connection: Connection | None = None
        self._lock = threading.RLock()
        self._subs: dict[int, _Subscription] = {}
        self._ids = itertools.count(1)

    def get_connection(self) -> Connection:
        """Return the shared connection, establishing it on first call."""
        with self._lock:
            if self._connection is None:
                self._connection = self._factory(self._on_message)
                logger.info("channel_connection_established")
            return self._connection

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def subscribe(
        self,
        flt: SubscriptionFilter | None,
        on_update: UpdateHandler,
    ) -> Unsubscribe:
        """
        Register on_update for vibe:update events and announce flt to the remote side.

        Duplicate filters and repeated handlers are allowed; each call is an
        independent registration with its own unsubscribe.
        """
        flt = flt or SubscriptionFilter()
        conn = self.get_connection()
        with self._lock:
            sub = _Subscription(next(self._ids), flt, on_update)
            self._subs[sub.id] = sub
            sub.start()
        conn.emit(EVENT_SUBSCRIBE, flt.to_payload())
        logger.info(
            "channel_subscribed",
            subscription_id=sub.id,
            interests=list(flt.interests),
            lifestyles=list(flt.lifestyles),
        )

        def unsubscribe() -> None:
            self._remove(sub.id)

        return unsubscribe

    def _remove(self, sub_id: int) -> None:
        with self._lock:
            sub = self._subs.pop(sub_id, None)
        if sub is None:
            return
        sub.cancel()
        logger.info("channel_unsubscribed", subscription_id=sub_id)

    def close(self) -> None:
        """Process shutdown: drop every subscription and close the connection."""
        with self._lock:
            subs = list(self._subs.values())
            self._subs.clear()
            conn, self._connection = self._connection, None
        for sub in subs:
            sub.cancel()
        if conn is not None:
            conn.close()

    def _on_message(self, event: str, payload: Any) -> None:
        """Inbound sink: fan vibe:update out to a snapshot of current subscriptions."""
        if event == EVENT_VIBE_UPDATE:
            try:
                update = VibeUpdateEvent.from_payload(payload)
            except MalformedEvent as e:
                logger.warning("channel_malformed_event", error=str(e))
                return
            with self._lock:
                subs = list(self._subs.values())
            for sub in subs:
                sub.offer(update)
            return
        if event == EVENT_SUBSCRIBED:
            rooms = payload.get("rooms") if isinstance(payload, dict) else None
            logger.info("channel_subscription_ack", rooms=rooms)
        elif event == EVENT_HELLO:
            logger.debug("channel_hello")
        else:
            logger.debug("channel_event_ignored", event_name=event)
