"""
ExchangeCoordinator — the only path from an authorization code to a provider.

    validate request → CodeGuard.claim(code) → connector.exchange(code)

Validation happens before the claim so a malformed request never burns a
code.  Once a claim is granted it is never given back, whatever happens to
the exchange afterwards (provider error, timeout, cancellation).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from connectors.models import ProviderCredential
from connectors.registry import ConnectorRegistry
from core.code_guard import ClaimResult, CodeGuard, hash_code
from core.errors import (
    DuplicateRequest,
    GatewayError,
    MissingParameter,
    RedirectNotAllowed,
    UnknownProvider,
)

logger = logging.getLogger(__name__)


class ExchangeStatus(str, Enum):
    EXCHANGED = "exchanged"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class ExchangeOutcome:
    status: ExchangeStatus
    provider: str
    correlation_key: str
    credential: Optional[ProviderCredential] = None
    error: Optional[GatewayError] = None

    @property
    def ok(self) -> bool:
        return self.status is ExchangeStatus.EXCHANGED

    def raise_for_outcome(self) -> ProviderCredential:
        """Return the credential, or raise the error this outcome stands for."""
        if self.status is ExchangeStatus.DUPLICATE:
            raise DuplicateRequest(
                "Authorization code was already used or has expired; restart the connection flow"
            )
        if self.error is not None:
            raise self.error
        if self.credential is None:
            raise GatewayError(f"{self.provider} exchange finished without a credential")
        return self.credential


class ExchangeCoordinator:
    """Combines CodeGuard and the connector registry into one exchange call."""

    def __init__(
        self,
        guard: CodeGuard,
        registry: ConnectorRegistry,
        redirect_allowlist: Iterable[str] = (),
    ) -> None:
        self._guard = guard
        self._registry = registry
        self._redirect_allowlist = frozenset(redirect_allowlist)

    async def exchange(
        self,
        provider: str,
        raw_code: Optional[str],
        redirect_uri: Optional[str],
        correlation_key: Optional[str],
        code_verifier: Optional[str] = None,
    ) -> ExchangeOutcome:
        connector = self._registry.get(provider)
        if connector is None:
            raise UnknownProvider(f"Provider '{provider}' is not supported")

        if not raw_code:
            raise MissingParameter("code", "Authorization code is required")
        if not redirect_uri:
            raise MissingParameter("redirect_uri", "Redirect URI is required")
        if not correlation_key:
            raise MissingParameter("correlation_key", "Correlation key (workspace id) is required")
        if connector.requires_pkce and not code_verifier:
            raise MissingParameter("code_verifier", "Code verifier is required for PKCE")
        if self._redirect_allowlist and redirect_uri not in self._redirect_allowlist:
            raise RedirectNotAllowed(f"Redirect URI '{redirect_uri}' is not allowed")

        claim = await self._guard.claim(raw_code, provider=provider)
        if claim is ClaimResult.ALREADY_CLAIMED:
            logger.info(
                "Duplicate %s code %s… for %s",
                provider, hash_code(raw_code)[:12], correlation_key,
            )
            return ExchangeOutcome(ExchangeStatus.DUPLICATE, provider, correlation_key)

        try:
            credential = await connector.exchange(raw_code, redirect_uri, code_verifier)
        except GatewayError as exc:
            logger.warning(
                "%s exchange failed for %s: %s (%s)",
                provider, correlation_key, exc.error, exc.message,
            )
            return ExchangeOutcome(
                ExchangeStatus.FAILED, provider, correlation_key, error=exc,
            )

        logger.info(
            "%s code exchanged for %s (resources=%d)",
            provider, correlation_key, len(credential.resources),
        )
        return ExchangeOutcome(
            ExchangeStatus.EXCHANGED, provider, correlation_key, credential=credential,
        )
