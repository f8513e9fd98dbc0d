"""
WebhookVerifier — authenticates Stripe-style signed webhook deliveries.

Header format::

    Stripe-Signature: t=1700000000,v1=5257a869e7ec...,v1=...

The signed string is ``"<t>." + raw_body``; the HMAC-SHA256 of it must match
one of the ``v1`` values.  Only the raw request bytes are signed, so the
body is parsed *after* verification and never re-serialised.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import time
from typing import Callable, List, Optional, Tuple

from core.errors import (
    ConfigurationError,
    MalformedHeader,
    MalformedPayload,
    MissingSignature,
    SignatureMismatch,
    StaleTimestamp,
)
from webhooks.models import WebhookEvent

logger = logging.getLogger(__name__)

_SCHEME = "v1"


def compute_signature(secret: str, timestamp: int, raw_body: bytes) -> str:
    """Hex HMAC-SHA256 over ``"<timestamp>." + raw_body``."""
    signed_payload = f"{timestamp}.".encode() + raw_body
    return hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()


def _parse_header(header: str) -> Tuple[int, List[str]]:
    timestamp: Optional[int] = None
    signatures: List[str] = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise MalformedHeader("non-integer timestamp") from None
        elif key == _SCHEME and value:
            signatures.append(value)
    if timestamp is None:
        raise MalformedHeader("no timestamp")
    if not signatures:
        raise MalformedHeader(f"no {_SCHEME} signature")
    return timestamp, signatures


class WebhookVerifier:
    """Verifies signatures for one provider's shared secret."""

    def __init__(
        self,
        secret: str,
        *,
        tolerance_seconds: int = 300,
        provider: str = "stripe",
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret:
            raise ConfigurationError(f"Webhook secret for '{provider}' is not configured")
        self._secret = secret
        self._tolerance = tolerance_seconds
        self._clock = clock
        self.provider = provider

    def verify(self, raw_body: bytes, signature_header: Optional[str]) -> WebhookEvent:
        """
        Verify ``raw_body`` against ``signature_header`` and parse the event.

        Raises a ``VerificationError`` subclass on any failure; nothing in
        the body is trusted until the signature has matched.
        """
        if not signature_header:
            raise MissingSignature()

        timestamp, candidates = _parse_header(signature_header)
        expected = compute_signature(self._secret, timestamp, raw_body).encode()

        matched = False
        for candidate in candidates:
            # bytes, not str: compare_digest rejects non-ASCII str input
            if hmac.compare_digest(expected, candidate.encode()):
                matched = True
        if not matched:
            raise SignatureMismatch()

        if abs(self._clock() - timestamp) > self._tolerance:
            raise StaleTimestamp(f"timestamp {timestamp} outside {self._tolerance}s window")

        return self._parse_event(raw_body)

    def _parse_event(self, raw_body: bytes) -> WebhookEvent:
        try:
            body = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            raise MalformedPayload("body is not JSON") from None
        if not isinstance(body, dict) or not body.get("id") or not body.get("type"):
            raise MalformedPayload("event has no id/type")
        return WebhookEvent(
            event_id=str(body["id"]),
            type=str(body["type"]),
            provider=self.provider,
            payload=body,
        )
