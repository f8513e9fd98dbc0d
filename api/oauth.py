"""
OAuth routes — provider listing, authorization URLs, code exchange and refresh.

Route prefix: /api/v1/oauth
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_connector_registry, get_exchange_coordinator
from api.schemas import TokenExchangeRequest, TokenExchangeResponse, TokenRefreshRequest
from connectors.registry import ConnectorRegistry
from core.errors import UnknownProvider
from core.exchange_coordinator import ExchangeCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])


@router.get("/providers")
async def list_providers(
    registry: ConnectorRegistry = Depends(get_connector_registry),
) -> List[Dict[str, Any]]:
    """List supported providers and whether their credentials are configured."""
    return registry.list_providers()


@router.get("/{provider}/auth-url")
async def get_auth_url(
    provider: str,
    redirect_uri: str = Query(...),
    state: str = Query(...),
    code_challenge: Optional[str] = Query(None),
    registry: ConnectorRegistry = Depends(get_connector_registry),
) -> Dict[str, str]:
    """
    Build the provider's consent URL.

    PKCE providers (TikTok, Twitter) expect the S256 ``code_challenge``
    derived from the verifier the client later sends to ``/token``.
    """
    connector = registry.get(provider)
    if connector is None:
        raise UnknownProvider(f"Provider '{provider}' is not supported")
    return {
        "auth_url": connector.get_auth_url(redirect_uri, state, code_challenge),
        "provider": provider,
    }


@router.post("/{provider}/token")
async def exchange_token(
    provider: str,
    body: TokenExchangeRequest,
    coordinator: ExchangeCoordinator = Depends(get_exchange_coordinator),
) -> Dict[str, Any]:
    """
    Exchange an authorization code exactly once.

    409 means the code was already submitted (by a retry, a double click or
    another instance); the client must restart the OAuth flow.
    """
    outcome = await coordinator.exchange(
        provider,
        body.code,
        body.redirect_uri,
        body.correlation_key,
        code_verifier=body.code_verifier,
    )
    credential = outcome.raise_for_outcome()
    return TokenExchangeResponse.from_credential(credential, outcome.correlation_key).to_body()


@router.post("/{provider}/refresh")
async def refresh_token(
    provider: str,
    body: TokenRefreshRequest,
    registry: ConnectorRegistry = Depends(get_connector_registry),
) -> Dict[str, Any]:
    """
    Trade a stored refresh token for a new access token.

    Only providers that issue refresh tokens (Twitter, YouTube) accept this;
    others answer 400 ``refresh_not_supported``.
    """
    connector = registry.get(provider)
    if connector is None:
        raise UnknownProvider(f"Provider '{provider}' is not supported")
    credential = await connector.refresh(body.refresh_token)
    logger.info("%s access token refreshed", provider)
    return TokenExchangeResponse.from_credential(credential).to_body()
