"""
Vibe telemetry producer: cadence loop and per-tick lifecycle.

Every cadence interval: sample audio and motion, fuse into score/confidence,
build a VibeReading, serialize, sign when a secret is configured, and hand the
envelope to the transport. A failed tick (sampling, serialization, transport)
is logged and dropped; the loop keeps running until stop().

At most one loop per producer: start() while running cancels the previous
loop first. The whole producer is gated by an external flag; when the gate is
closed, start() and stop() do nothing.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from vibe_pulse.config.env import telemetry_enabled
from vibe_pulse.config.settings import (
    DEFAULT_CADENCE_SEC,
    DEFAULT_SAMPLE_DURATION_SEC,
    DEFAULT_TRANSPORT_TIMEOUT_SEC,
    Settings,
)
from vibe_pulse.core.exceptions import (
    SamplingFailure,
    SerializationFailure,
    TransportFailure,
)
from vibe_pulse.telemetry.fusion import fuse
from vibe_pulse.telemetry.models import SignedEnvelope, VibeFeatures, VibeReading
from vibe_pulse.telemetry.sensors import Sensor, read_normalized
from vibe_pulse.telemetry.signer import seal
from vibe_pulse.telemetry.transport import Transport
from vibe_pulse.vibe_logging import get_logger

logger = get_logger(__name__)

# Covers one in-flight submission at the default transport timeout
SHUTDOWN_JOIN_TIMEOUT_SEC = DEFAULT_TRANSPORT_TIMEOUT_SEC + 1.0


@dataclass(frozen=True)
class ProducerConfig:
    """Per-start producer configuration. cadence_sec and sample_duration_sec are independent."""

    cadence_sec: float = DEFAULT_CADENCE_SEC
    sample_duration_sec: int = DEFAULT_SAMPLE_DURATION_SEC
    secret: str | None = None

    def __post_init__(self) -> None:
        if self.cadence_sec <= 0:
            raise ValueError("cadence_sec must be positive")
        if self.sample_duration_sec <= 0:
            raise ValueError("sample_duration_sec must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProducerConfig":
        return cls(
            cadence_sec=settings.cadence_sec,
            sample_duration_sec=settings.sample_duration_sec,
            secret=settings.hmac_secret,
        )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VibeProducer:
    """
    Periodic vibe reading producer for one venue at a time.

    Args:
        transport: Collaborator that delivers envelopes (HttpTransport in production).
        audio_sensor: Normalized audio loudness source.
        motion_sensor: Normalized motion energy source.
        gate: Feature flag; evaluated on every start()/stop(). Default: VIBE_TELEMETRY_ENABLED.
        clock: Returns the sampling timestamp (timezone-aware).
        shutdown_timeout_sec: How long stop() and a restarting start() wait for the
            previous loop to finish its in-flight tick. Keep it above the transport timeout.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        audio_sensor: Sensor,
        motion_sensor: Sensor,
        gate: Callable[[], bool] = telemetry_enabled,
        clock: Callable[[], datetime] = _utc_now,
        shutdown_timeout_sec: float = SHUTDOWN_JOIN_TIMEOUT_SEC,
    ) -> None:
        self._transport = transport
        self._audio = audio_sensor
        self._motion = motion_sensor
        self._gate = gate
        self._clock = clock
        self._shutdown_timeout = shutdown_timeout_sec
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None
        self._venue_id: str | None = None

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def venue_id(self) -> str | None:
        return self._venue_id if self.is_running else None

    def start(self, venue_id: str, config: ProducerConfig | None = None) -> bool:
        """
        Start the cadence loop for venue_id. Returns False when the gate is closed.

        A loop already running (for any venue) is stopped, and its in-flight tick
        waited for, before the new one starts.
        """
        if not self._gate():
            logger.debug("producer_start_gated", venue_id=venue_id)
            return False
        if not venue_id or not venue_id.strip():
            raise ValueError("venue_id must be non-empty")
        cfg = config or ProducerConfig()
        with self._lock:
            self._cancel_locked()
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(venue_id, cfg, stop_event),
                name=f"vibe-producer-{venue_id}",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            self._venue_id = venue_id
            thread.start()
        logger.info(
            "producer_started",
            venue_id=venue_id,
            cadence_sec=cfg.cadence_sec,
            sample_duration_sec=cfg.sample_duration_sec,
            signed=bool(cfg.secret),
        )
        return True

    def stop(self) -> None:
        """Cancel the loop. Idempotent; a no-op when not running or when the gate is closed."""
        if not self._gate():
            return
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        stop_event, thread = self._stop_event, self._thread
        self._stop_event = None
        self._thread = None
        self._venue_id = None
        if stop_event is None or thread is None:
            return
        stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout=self._shutdown_timeout)
            if thread.is_alive():
                logger.warning("producer_join_timeout", thread=thread.name)

    def _run(self, venue_id: str, config: ProducerConfig, stop_event: threading.Event) -> None:
        """Fixed-interval loop; the first tick fires one cadence after start."""
        tick_count = 0
        while not stop_event.wait(config.cadence_sec):
            tick_count += 1
            try:
                self.tick(venue_id, config)
            except Exception as e:
                logger.exception(
                    "producer_tick_crashed",
                    venue_id=venue_id,
                    tick=tick_count,
                    error=str(e),
                )
        logger.info("producer_stopped", venue_id=venue_id, ticks=tick_count)

    def build_reading(self, venue_id: str, config: ProducerConfig) -> VibeReading:
        """Sample both sensors and fuse them into a reading. Raises SamplingFailure."""
        audio = read_normalized(self._audio, "audio")
        motion = read_normalized(self._motion, "motion")
        fused = fuse(audio, motion)
        return VibeReading(
            venue_id=venue_id,
            score=fused.score,
            confidence=fused.confidence,
            sampled_at=self._clock(),
            features=VibeFeatures(
                audio_loudness=audio,
                motion_energy=motion,
                sample_duration_sec=config.sample_duration_sec,
            ),
        )

    def tick(self, venue_id: str, config: ProducerConfig) -> SignedEnvelope | None:
        """
        One unit of work: sample, fuse, serialize, sign, submit.

        Returns the submitted envelope, or None when the tick was skipped.
        Never raises for sampling, serialization, or transport failures.
        """
        try:
            reading = self.build_reading(venue_id, config)
            envelope = seal(venue_id, reading.serialize(), config.secret)
        except SamplingFailure as e:
            logger.warning("producer_sampling_failed", venue_id=venue_id, error=str(e))
            return None
        except SerializationFailure as e:
            logger.warning("producer_serialization_failed", venue_id=venue_id, error=str(e))
            return None
        try:
            self._transport.submit(envelope)
        except TransportFailure as e:
            # No retry and no offline queue: the reading is dropped.
            logger.warning(
                "producer_submit_failed",
                venue_id=venue_id,
                status_code=e.status_code,
                error=str(e),
            )
            return None
        logger.info(
            "producer_tick_submitted",
            venue_id=venue_id,
            score=round(reading.score, 2),
            confidence=round(reading.confidence, 3),
            signed=envelope.is_signed,
        )
        return envelope
