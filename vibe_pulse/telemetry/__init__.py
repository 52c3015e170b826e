"""
Vibe telemetry producer package.

Samples two normalized sensor signals, fuses them into a vibe reading, signs
the serialized body when a secret is configured, and submits it on a fixed
cadence through an HTTP transport.
"""

from vibe_pulse.telemetry.fusion import FusionResult, fuse
from vibe_pulse.telemetry.models import SignedEnvelope, VibeFeatures, VibeReading
from vibe_pulse.telemetry.producer import ProducerConfig, VibeProducer
from vibe_pulse.telemetry.signer import seal, sign, verify
from vibe_pulse.telemetry.transport import HttpTransport

__all__ = [
    "FusionResult",
    "HttpTransport",
    "ProducerConfig",
    "SignedEnvelope",
    "VibeFeatures",
    "VibeProducer",
    "VibeReading",
    "fuse",
    "seal",
    "sign",
    "verify",
]
