"""
Tests for WebhookVerifier — Stripe-style t=/v1= signatures over raw bytes.
"""

import json

import pytest

from core.errors import (
    ConfigurationError,
    MalformedHeader,
    MalformedPayload,
    MissingSignature,
    SignatureMismatch,
    StaleTimestamp,
    VerificationError,
)
from webhooks.verifier import WebhookVerifier, compute_signature

SECRET = "whsec_test_secret"
NOW = 1_700_000_000

BODY = json.dumps({
    "id": "evt_123",
    "type": "checkout.session.completed",
    "data": {"object": {"id": "cs_1", "customer": "cus_9"}},
}, separators=(",", ":")).encode()


def _header(body: bytes = BODY, ts: int = NOW, secret: str = SECRET) -> str:
    return f"t={ts},v1={compute_signature(secret, ts, body)}"


def _verifier(now: float = NOW, tolerance: int = 300) -> WebhookVerifier:
    return WebhookVerifier(SECRET, tolerance_seconds=tolerance, clock=lambda: now)


class TestVerify:
    def test_valid_signature(self):
        event = _verifier().verify(BODY, _header())

        assert event.event_id == "evt_123"
        assert event.type == "checkout.session.completed"
        assert event.provider == "stripe"
        assert event.payload["data"]["object"]["customer"] == "cus_9"

    def test_one_byte_mutation_rejected(self):
        header = _header()
        tampered = BODY.replace(b"cus_9", b"cus_8")
        assert len(tampered) == len(BODY)
        with pytest.raises(SignatureMismatch):
            _verifier().verify(tampered, header)

    def test_reserialised_body_rejected(self):
        header = _header()
        pretty = json.dumps(json.loads(BODY), indent=2).encode()
        with pytest.raises(SignatureMismatch):
            _verifier().verify(pretty, header)

    def test_stale_timestamp_rejected_even_if_signed(self):
        old = NOW - 301
        with pytest.raises(StaleTimestamp):
            _verifier().verify(BODY, _header(ts=old))

    def test_future_timestamp_outside_window_rejected(self):
        with pytest.raises(StaleTimestamp):
            _verifier().verify(BODY, _header(ts=NOW + 1000))

    def test_within_tolerance_accepted(self):
        assert _verifier().verify(BODY, _header(ts=NOW - 299)).event_id == "evt_123"

    def test_wrong_secret_rejected(self):
        with pytest.raises(SignatureMismatch):
            _verifier().verify(BODY, _header(secret="whsec_other"))

    def test_any_matching_v1_accepted(self):
        header = f"t={NOW},v1=deadbeef,v1={compute_signature(SECRET, NOW, BODY)},v0=ignored"
        assert _verifier().verify(BODY, header).event_id == "evt_123"

    def test_missing_header(self):
        with pytest.raises(MissingSignature):
            _verifier().verify(BODY, None)
        with pytest.raises(MissingSignature):
            _verifier().verify(BODY, "")

    @pytest.mark.parametrize(
        "header",
        ["garbage", f"v1={'a' * 64}", f"t={NOW}", "t=yesterday,v1=abc"],
    )
    def test_malformed_header(self, header):
        with pytest.raises(MalformedHeader):
            _verifier().verify(BODY, header)

    def test_signed_non_event_body(self):
        body = b'{"hello": "world"}'
        with pytest.raises(MalformedPayload):
            _verifier().verify(body, _header(body=body))

    def test_all_failures_render_identically(self):
        errors = [MissingSignature(), SignatureMismatch(), StaleTimestamp("old"), MalformedHeader("x")]
        bodies = {json.dumps(e.to_dict(), sort_keys=True) for e in errors}
        assert len(bodies) == 1
        assert all(isinstance(e, VerificationError) and e.status_code == 400 for e in errors)

    def test_empty_secret_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            WebhookVerifier("")


def test_non_ascii_signature_is_a_mismatch():
    with pytest.raises(SignatureMismatch):
        _verifier().verify(BODY, f"t={NOW},v1=café")
