"""
BaseConnector — abstract interface for all OAuth2 token-exchange connectors.

Every provider (Facebook, LinkedIn, TikTok, Twitter, YouTube) subclasses this
and implements ``get_auth_url`` and ``_exchange``; providers that issue
refresh tokens also implement ``_refresh``.  The HTTP plumbing and the
mapping of provider failures onto the gateway error taxonomy live here so
every connector fails the same way.

Connectors never retry: an authorization code is single-use at the
provider, so a second attempt with the same code cannot succeed.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from connectors.models import ProviderCredential, ResourceHandle
from core.errors import (
    MalformedResponse,
    MissingCredentials,
    MissingParameter,
    ProviderProtocolError,
    RefreshNotSupported,
    TransportError,
)

logger = logging.getLogger(__name__)

_SCOPE_SPLIT = re.compile(r"[,\s]+")


@dataclass(frozen=True)
class ConnectorCredentials:
    """Client credentials captured once from settings at construction."""

    client_id: str = ""
    client_secret: str = ""

    @property
    def complete(self) -> bool:
        return bool(self.client_id and self.client_secret)


def split_scope(raw: Any) -> List[str]:
    """Providers report scope as comma- or space-separated strings (or lists)."""
    if not raw:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(s) for s in raw if s]
    return [s for s in _SCOPE_SPLIT.split(str(raw)) if s]


class BaseConnector(ABC):
    """Abstract base for all OAuth2 connectors."""

    def __init__(
        self,
        credentials: ConnectorCredentials,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._credentials = credentials
        self._timeout = timeout
        self._transport = transport

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug: 'facebook', 'linkedin', 'tiktok', 'twitter', 'youtube'."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        ...

    @property
    @abstractmethod
    def scopes(self) -> List[str]:
        """Scopes requested on the authorization URL."""
        ...

    @property
    def requires_pkce(self) -> bool:
        """True when the token endpoint needs the PKCE ``code_verifier``."""
        return False

    def is_configured(self) -> bool:
        return self._credentials.complete

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def get_auth_url(
        self,
        redirect_uri: str,
        state: str,
        code_challenge: Optional[str] = None,
    ) -> str:
        """Build the provider's authorization URL for the consent redirect."""
        ...

    async def exchange(
        self,
        code: str,
        redirect_uri: str,
        code_verifier: Optional[str] = None,
    ) -> ProviderCredential:
        """
        Exchange an authorization code for a ``ProviderCredential``.

        Raises
        ------
        MissingCredentials     – client id / secret not configured (no I/O)
        ProviderProtocolError  – provider rejected any hop
        TransportError         – network failure or timeout on any hop
        MalformedResponse      – 2xx without the expected fields
        """
        if not self.is_configured():
            raise MissingCredentials(
                f"{self.display_name} client id/secret are not configured"
            )
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await self._exchange(client, code, redirect_uri, code_verifier)

    @abstractmethod
    async def _exchange(
        self,
        client: httpx.AsyncClient,
        code: str,
        redirect_uri: str,
        code_verifier: Optional[str],
    ) -> ProviderCredential:
        """Provider-specific hop sequence."""
        ...

    # ── Token refresh ───────────────────────────────────────────────────

    @property
    def supports_refresh(self) -> bool:
        """True when the provider accepts ``grant_type=refresh_token``."""
        return False

    async def refresh(self, refresh_token: Optional[str]) -> ProviderCredential:
        """
        Trade a refresh token for a new access token.

        Refresh tokens are reusable until the provider rotates them, so this
        path is not single-use guarded.  When the provider does not return a
        new refresh token the one presented is carried over.
        """
        if not self.supports_refresh:
            raise RefreshNotSupported(f"{self.display_name} does not issue refresh tokens")
        if not refresh_token:
            raise MissingParameter("refresh_token", "Refresh token is required")
        if not self.is_configured():
            raise MissingCredentials(
                f"{self.display_name} client id/secret are not configured"
            )
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            credential = await self._refresh(client, refresh_token)
        if not credential.refresh_token:
            credential = credential.model_copy(update={"refresh_token": refresh_token})
        return credential

    async def _refresh(
        self,
        client: httpx.AsyncClient,
        refresh_token: str,
    ) -> ProviderCredential:
        raise RefreshNotSupported(f"{self.display_name} does not issue refresh tokens")

    # ── Helpers ─────────────────────────────────────────────────────────

    async def _request_json(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        *,
        hop: str,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Perform one hop and return its JSON body, or raise a gateway error."""
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out after %.1fs", self.display_name, hop, self._timeout)
            raise TransportError(f"{self.display_name} {hop} timed out") from exc
        except httpx.RequestError as exc:
            logger.warning("%s %s transport failure: %s", self.display_name, hop, exc)
            raise TransportError(f"{self.display_name} {hop} failed: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = None

        if not resp.is_success or (isinstance(data, dict) and self._has_error(data)):
            code, message = self._parse_error(data if isinstance(data, dict) else {})
            if not message and data is None:
                message = resp.text[:500] or None
            logger.warning(
                "%s %s rejected: status=%s error=%s message=%s",
                self.display_name, hop, resp.status_code, code, message,
            )
            raise ProviderProtocolError(
                self.provider_name,
                code or str(resp.status_code),
                message,
                http_status=resp.status_code,
                details=data if isinstance(data, dict) else None,
            )

        if not isinstance(data, dict):
            raise MalformedResponse(f"{self.display_name} {hop} returned a non-JSON body")
        return data

    def _has_error(self, data: Dict[str, Any]) -> bool:
        return bool(data.get("error"))

    def _parse_error(self, data: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
        """Return (provider error code, provider message) verbatim."""
        err = data.get("error")
        if isinstance(err, dict):
            code = err.get("code") or err.get("type")
            return (str(code) if code is not None else None), err.get("message")
        code = err or data.get("error_code")
        message = data.get("error_description") or data.get("description") or data.get("message")
        return (str(code) if code else None), message

    def _build_credential(
        self,
        token_data: Dict[str, Any],
        *,
        resources: Iterable[ResourceHandle] = (),
        account_id: Optional[str] = None,
    ) -> ProviderCredential:
        access_token = token_data.get("access_token")
        if not access_token or not isinstance(access_token, str):
            raise MalformedResponse(f"{self.display_name} response has no access_token")

        expires_in = token_data.get("expires_in")
        expires_at = None
        if expires_in is not None:
            try:
                expires_in = int(expires_in)
            except (TypeError, ValueError):
                raise MalformedResponse(
                    f"{self.display_name} returned a non-numeric expires_in"
                ) from None
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=expires_in)

        try:
            return ProviderCredential(
                provider=self.provider_name,
                access_token=access_token,
                token_type=token_data.get("token_type") or "Bearer",
                expires_in=expires_in,
                expires_at=expires_at,
                refresh_token=token_data.get("refresh_token"),
                scope=split_scope(token_data.get("scope")),
                account_id=account_id,
                resources=list(resources),
            )
        except ValidationError as exc:
            fields = ", ".join(str(e["loc"][0]) for e in exc.errors() if e.get("loc"))
            raise MalformedResponse(
                f"{self.display_name} returned unexpected field types: {fields}"
            ) from None
