"""
ConnectorRegistry — maps a provider tag to its connector instance.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import httpx

from config.settings import Settings, config
from connectors.base import BaseConnector, ConnectorCredentials
from connectors.facebook import FacebookConnector
from connectors.linkedin import LinkedInConnector
from connectors.tiktok import TikTokConnector
from connectors.twitter import TwitterConnector
from connectors.youtube import YouTubeConnector

logger = logging.getLogger(__name__)


def build_connectors(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[BaseConnector]:
    """Instantiate every known connector with credentials captured from ``settings``."""

    def creds(provider: str) -> ConnectorCredentials:
        return ConnectorCredentials(**settings.get_connector_credentials(provider))

    common = {"timeout": settings.http_timeout_seconds, "transport": transport}
    return [
        FacebookConnector(
            creds("facebook"),
            graph_version=settings.facebook_graph_version,
            fetch_pages=settings.facebook_fetch_pages,
            **common,
        ),
        LinkedInConnector(creds("linkedin"), **common),
        TikTokConnector(creds("tiktok"), **common),
        TwitterConnector(creds("twitter"), **common),
        YouTubeConnector(creds("youtube"), **common),
    ]


class ConnectorRegistry:
    """Singleton registry for all OAuth connectors."""

    _instance: Optional["ConnectorRegistry"] = None

    def __new__(cls) -> "ConnectorRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._connectors = {}
            cls._instance._discovered = False
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None

    def discover(
        self,
        settings: Settings = config,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Register every known connector.

        Unconfigured connectors stay registered so that requests for them
        fail with ``MissingCredentials`` instead of looking like an unknown
        provider.
        """
        if self._discovered:
            return
        for conn in build_connectors(settings, transport):
            self.register(conn)
        self._discovered = True

    def register(self, connector: BaseConnector) -> None:
        self._connectors[connector.provider_name] = connector
        if connector.is_configured():
            logger.info(
                "Connector registered: %s (%s)",
                connector.display_name,
                connector.provider_name,
            )
        else:
            logger.warning(
                "Connector %s registered but not configured (missing client_id/secret)",
                connector.provider_name,
            )

    def get(self, provider: str) -> Optional[BaseConnector]:
        """Get a connector by provider name."""
        return self._connectors.get(provider)

    def list_providers(self) -> List[Dict[str, object]]:
        """Return info about all registered connectors."""
        return [
            {
                "provider": c.provider_name,
                "display_name": c.display_name,
                "configured": c.is_configured(),
                "requires_pkce": c.requires_pkce,
                "supports_refresh": c.supports_refresh,
            }
            for c in self._connectors.values()
        ]

    def list_configured(self) -> List[str]:
        return [name for name, c in self._connectors.items() if c.is_configured()]
