"""
Tests for HttpTransport using httpx.MockTransport (no network).
"""

from __future__ import annotations

import httpx
import pytest

from vibe_pulse.core.exceptions import TransportFailure
from vibe_pulse.telemetry.signer import seal
from vibe_pulse.telemetry.transport import HttpTransport, vibe_path

BODY = b'{"venueId":"v1","score":5.0}'


def _recording(status_code: int = 202):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code, json={"ok": status_code < 400})

    return requests, httpx.MockTransport(handler)


def test_vibe_path_quotes_venue_id():
    assert vibe_path("v1") == "/venues/v1/vibe"
    assert vibe_path("a/b c") == "/venues/a%2Fb%20c/vibe"


def test_submit_posts_body_and_signature():
    requests, mock = _recording()
    transport = HttpTransport("http://gw.test/api/", transport=mock)
    envelope = seal("v1", BODY, "s3cret")
    transport.submit(envelope)

    assert len(requests) == 1
    req = requests[0]
    assert req.method == "POST"
    assert str(req.url) == "http://gw.test/api/venues/v1/vibe"
    assert req.content == BODY
    assert req.headers["content-type"] == "application/json"
    assert req.headers["x-signature"] == envelope.signature


def test_submit_unsigned_has_no_signature_header():
    requests, mock = _recording()
    HttpTransport("http://gw.test/api", transport=mock).submit(seal("v1", BODY, None))
    assert "x-signature" not in requests[0].headers


def test_submit_error_status_raises():
    _, mock = _recording(status_code=500)
    with pytest.raises(TransportFailure) as exc:
        HttpTransport("http://gw.test/api", transport=mock).submit(seal("v1", BODY, None))
    assert exc.value.status_code == 500


def test_submit_network_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = HttpTransport("http://gw.test/api", transport=httpx.MockTransport(handler))
    with pytest.raises(TransportFailure) as exc:
        transport.submit(seal("v1", BODY, None))
    assert exc.value.status_code is None


def test_empty_base_url_rejected():
    with pytest.raises(ValueError):
        HttpTransport("  ")
