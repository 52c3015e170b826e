"""
Integrity tag for telemetry bodies: hex(sha256(secret || body)).

The receiver recomputes the tag over the raw request body with the same
pre-shared secret. Deterministic in (secret, body). No secret, no signature.
"""

from __future__ import annotations

import hashlib
import hmac

from vibe_pulse.telemetry.models import SignedEnvelope


def sign(secret: str, body: bytes) -> str:
    """Return the lowercase hex SHA-256 of secret (UTF-8) followed by body."""
    digest = hashlib.sha256()
    digest.update(secret.encode("utf-8"))
    digest.update(body)
    return digest.hexdigest()


def verify(secret: str, body: bytes, signature: str | None) -> bool:
    """Constant-time check of a received signature against the expected tag."""
    if not signature:
        return False
    return hmac.compare_digest(sign(secret, body), signature.strip().lower())


def seal(venue_id: str, body: bytes, secret: str | None) -> SignedEnvelope:
    """Wrap body in an envelope, signing only when a secret is configured."""
    if not secret:
        return SignedEnvelope(venue_id=venue_id, body=body, signature=None)
    return SignedEnvelope(venue_id=venue_id, body=body, signature=sign(secret, body))
