"""
Error taxonomy for the OAuth exchange gateway and webhook intake.

Every error carries a stable ``error`` tag and an HTTP ``status_code`` so the
API layer can render it without knowing where it came from.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base class for every error surfaced by the gateway."""

    error: str = "gateway_error"
    status_code: int = 500

    def __init__(self, message: str = "", *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message or self.error)
        self.message = message or self.error
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


# ── Request validation ─────────────────────────────────────────────────


class MissingParameter(GatewayError):
    status_code = 400

    def __init__(self, parameter: str, message: str = "") -> None:
        self.error = f"missing_{parameter}"
        super().__init__(message or f"'{parameter}' is required")
        self.parameter = parameter


class RedirectNotAllowed(GatewayError):
    error = "redirect_uri_not_allowed"
    status_code = 400


class UnknownProvider(GatewayError):
    error = "unknown_provider"
    status_code = 404


class RefreshNotSupported(GatewayError):
    error = "refresh_not_supported"
    status_code = 400


# ── Configuration ──────────────────────────────────────────────────────


class ConfigurationError(GatewayError):
    error = "configuration_error"
    status_code = 500


class MissingCredentials(ConfigurationError):
    """Client id / secret absent — raised before any network call."""


# ── Code admission ─────────────────────────────────────────────────────


class DuplicateRequest(GatewayError):
    error = "duplicate_code"
    status_code = 409


class ClaimStoreError(GatewayError):
    """The claim store could not give a definite answer; treated as not granted."""

    error = "claim_store_error"
    status_code = 500


# ── Provider exchange ──────────────────────────────────────────────────


class ProviderProtocolError(GatewayError):
    """The provider answered with a well-formed rejection."""

    error = "provider_error"
    status_code = 500

    def __init__(
        self,
        provider: str,
        provider_code: Optional[str],
        provider_message: Optional[str],
        *,
        http_status: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.provider = provider
        self.provider_code = provider_code
        self.provider_message = provider_message
        self.http_status = http_status
        super().__init__(
            provider_message or provider_code or f"{provider} rejected the token exchange",
            details=details,
        )


class TransportError(GatewayError):
    error = "network_error"
    status_code = 500


class MalformedResponse(GatewayError):
    error = "malformed_response"
    status_code = 500


# ── Webhook verification ───────────────────────────────────────────────

_VERIFICATION_MESSAGE = "Webhook signature verification failed"


class VerificationError(GatewayError):
    """
    Inbound webhook could not be authenticated.

    All subclasses render identically so callers cannot tell which part
    of the check failed.
    """

    error = "invalid_signature"
    status_code = 400

    def __init__(self, reason: str = "") -> None:
        super().__init__(_VERIFICATION_MESSAGE)
        self.reason = reason or type(self).__name__


class MissingSignature(VerificationError):
    pass


class MalformedHeader(VerificationError):
    pass


class SignatureMismatch(VerificationError):
    pass


class StaleTimestamp(VerificationError):
    pass


class MalformedPayload(VerificationError):
    pass
