"""
Application-level exceptions.

Every failure mode in this package is recoverable: loops catch these at the
unit-of-work boundary (one producer tick, one inbound event), log, and carry on.
"""


class VibePulseError(Exception):
    """Base class for Vibe Pulse errors."""


class SamplingFailure(VibePulseError):
    """A sensor could not produce a normalized reading; the current tick is skipped."""


class SerializationFailure(VibePulseError):
    """A reading could not be serialized to its wire form; the current tick is skipped."""


class TransportFailure(VibePulseError):
    """Submission to the gateway failed; the reading is logged and dropped."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedEvent(VibePulseError):
    """An inbound real-time payload could not be read as a vibe update."""
