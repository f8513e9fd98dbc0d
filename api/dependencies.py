"""
FastAPI dependencies (shared across routes).

Everything configuration-derived is built once per process and reused, so
request handlers never read settings directly.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import Depends

from config.settings import config
from connectors.registry import ConnectorRegistry
from core.code_guard import CodeGuard
from core.errors import ConfigurationError, UnknownProvider
from core.exchange_coordinator import ExchangeCoordinator
from database.session import async_session_factory
from webhooks.dispatcher import EventDispatcher
from webhooks.handlers import register_default_handlers
from webhooks.seen_store import DatabaseSeenStore, MemorySeenStore
from webhooks.verifier import WebhookVerifier

# provider → inbound signature header
WEBHOOK_SIGNATURE_HEADERS: Dict[str, str] = {"stripe": "Stripe-Signature"}

_verifiers: Dict[str, WebhookVerifier] = {}
_dispatcher: Optional[EventDispatcher] = None


def get_connector_registry() -> ConnectorRegistry:
    registry = ConnectorRegistry()
    registry.discover()
    return registry


def get_code_guard() -> CodeGuard:
    return CodeGuard(async_session_factory)


def get_exchange_coordinator(
    guard: CodeGuard = Depends(get_code_guard),
    registry: ConnectorRegistry = Depends(get_connector_registry),
) -> ExchangeCoordinator:
    return ExchangeCoordinator(guard, registry, config.oauth_redirect_allowlist)


def get_webhook_verifier(provider: str) -> WebhookVerifier:
    """
    Verifier for ``provider``'s webhooks.

    Raises ``UnknownProvider`` for providers without a signature scheme and
    ``ConfigurationError`` when the shared secret is missing.
    """
    if provider not in WEBHOOK_SIGNATURE_HEADERS or provider not in config.webhook_providers:
        raise UnknownProvider(f"No webhook endpoint for '{provider}'")
    verifier = _verifiers.get(provider)
    if verifier is None:
        verifier = WebhookVerifier(
            config.get_webhook_secret(provider),
            tolerance_seconds=config.webhook_tolerance_seconds,
            provider=provider,
        )
        _verifiers[provider] = verifier
    return verifier


def init_webhook_verifiers() -> List[str]:
    """
    Build the verifier of every enabled webhook provider.

    Called at startup so a missing signing secret stops the process instead
    of surfacing as a 500 on the first delivery.
    """
    for provider in config.webhook_providers:
        if provider not in WEBHOOK_SIGNATURE_HEADERS:
            raise ConfigurationError(f"Webhook provider '{provider}' has no signature scheme")
        get_webhook_verifier(provider)
    return list(config.webhook_providers)


def get_event_dispatcher() -> EventDispatcher:
    global _dispatcher
    if _dispatcher is None:
        if config.webhook_dedup_backend == "database":
            store = DatabaseSeenStore(async_session_factory)
        else:
            store = MemorySeenStore(
                ttl_seconds=config.webhook_dedup_ttl_seconds,
                max_entries=config.webhook_dedup_max_entries,
            )
        _dispatcher = register_default_handlers(EventDispatcher(seen_store=store))
    return _dispatcher
