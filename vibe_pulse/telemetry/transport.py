"""
HTTP transport for telemetry submissions.

POST {api_base_url}/venues/{venue_id}/vibe with the serialized reading as the
JSON body and the optional x-signature header. Any network error or non-2xx
response surfaces as TransportFailure; retry policy is the caller's concern
(the producer logs and drops).
"""

from __future__ import annotations

from typing import Protocol
from urllib.parse import quote

import httpx

from vibe_pulse.core.exceptions import TransportFailure
from vibe_pulse.telemetry.models import SignedEnvelope
from vibe_pulse.vibe_logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SEC = 10.0
VIBE_PATH_TEMPLATE = "/venues/{venue_id}/vibe"


class Transport(Protocol):
    def submit(self, envelope: SignedEnvelope) -> None:
        ...


def vibe_path(venue_id: str) -> str:
    """Path for one venue's vibe submissions; venue id is percent-encoded."""
    return VIBE_PATH_TEMPLATE.format(venue_id=quote(venue_id, safe=""))


class HttpTransport:
    """
    Submits envelopes with httpx, one short-lived client per submission.

    Args:
        base_url: Gateway base URL, e.g. http://localhost:3001/api.
        timeout_sec: Total request timeout.
        transport: Optional httpx transport (tests pass httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not base_url.strip():
            raise ValueError("base_url must be non-empty")
        self._base_url = base_url.strip().rstrip("/")
        self._timeout = timeout_sec
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, venue_id: str) -> str:
        return self._base_url + vibe_path(venue_id)

    def submit(self, envelope: SignedEnvelope) -> None:
        url = self.url_for(envelope.venue_id)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                resp = client.post(url, content=envelope.body, headers=envelope.headers())
        except httpx.HTTPError as e:
            raise TransportFailure(f"POST {url} failed: {e}") from e
        if resp.status_code >= 400:
            raise TransportFailure(
                f"POST {url} returned {resp.status_code}",
                status_code=resp.status_code,
            )
        logger.debug(
            "transport_submitted",
            venue_id=envelope.venue_id,
            status_code=resp.status_code,
            signed=envelope.is_signed,
        )
