"""
FacebookConnector — multi-hop Graph API token exchange.

1. authorization code  → short-lived user token
2. short-lived token   → long-lived user token (``grant_type=fb_exchange_token``)
3. long-lived token    → managed pages, each with its own page token

Any hop failing aborts the whole chain.  A short-lived token on its own is
never returned.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from connectors.base import BaseConnector, ConnectorCredentials
from connectors.models import ProviderCredential, ResourceHandle
from core.errors import MalformedResponse

logger = logging.getLogger(__name__)

_PAGE_FIELDS = "id,name,access_token,category,instagram_business_account"


class FacebookConnector(BaseConnector):
    """OAuth2 connector for Facebook pages (and linked Instagram accounts)."""

    def __init__(
        self,
        credentials: ConnectorCredentials,
        *,
        graph_version: str = "v21.0",
        fetch_pages: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(credentials, **kwargs)
        self._graph_version = graph_version
        self._fetch_pages = fetch_pages

    @property
    def provider_name(self) -> str:
        return "facebook"

    @property
    def display_name(self) -> str:
        return "Facebook"

    @property
    def scopes(self) -> List[str]:
        return [
            "email",
            "public_profile",
            "pages_show_list",
            "instagram_basic",
            "pages_read_engagement",
            "pages_manage_posts",
        ]

    @property
    def _graph_url(self) -> str:
        return f"https://graph.facebook.com/{self._graph_version}"

    def get_auth_url(
        self,
        redirect_uri: str,
        state: str,
        code_challenge: Optional[str] = None,
    ) -> str:
        params = {
            "client_id": self._credentials.client_id,
            "redirect_uri": redirect_uri,
            "state": state,
            "response_type": "code",
            "scope": ",".join(self.scopes),
        }
        return f"https://www.facebook.com/{self._graph_version}/dialog/oauth?{urlencode(params)}"

    async def _exchange(
        self,
        client: httpx.AsyncClient,
        code: str,
        redirect_uri: str,
        code_verifier: Optional[str],
    ) -> ProviderCredential:
        # 1. Code → short-lived token
        short_data = await self._request_json(
            client,
            "GET",
            f"{self._graph_url}/oauth/access_token",
            hop="code exchange",
            params={
                "client_id": self._credentials.client_id,
                "client_secret": self._credentials.client_secret,
                "redirect_uri": redirect_uri,
                "code": code,
            },
        )
        short_token = short_data.get("access_token")
        if not short_token:
            raise MalformedResponse("Facebook code exchange returned no access_token")

        # 2. Short-lived → long-lived token
        long_data = await self._request_json(
            client,
            "GET",
            f"{self._graph_url}/oauth/access_token",
            hop="long-lived token exchange",
            params={
                "grant_type": "fb_exchange_token",
                "client_id": self._credentials.client_id,
                "client_secret": self._credentials.client_secret,
                "fb_exchange_token": short_token,
            },
        )
        if not long_data.get("access_token"):
            raise MalformedResponse("Facebook long-lived exchange returned no access_token")

        # 3. Managed pages
        resources: List[ResourceHandle] = []
        if self._fetch_pages:
            resources = await self._list_pages(client, long_data["access_token"])

        logger.info("Facebook exchange complete: %d page(s)", len(resources))
        return self._build_credential(long_data, resources=resources)

    async def _list_pages(self, client: httpx.AsyncClient, user_token: str) -> List[ResourceHandle]:
        data = await self._request_json(
            client,
            "GET",
            f"{self._graph_url}/me/accounts",
            hop="page listing",
            params={"fields": _PAGE_FIELDS, "access_token": user_token},
        )
        pages = data.get("data")
        if not isinstance(pages, list):
            raise MalformedResponse("Facebook page listing has no 'data' array")
        return [self._page_handle(p) for p in pages if isinstance(p, dict) and p.get("id")]

    @staticmethod
    def _page_handle(page: Dict[str, Any]) -> ResourceHandle:
        instagram = page.get("instagram_business_account") or {}
        if not isinstance(instagram, dict):
            raise MalformedResponse(
                f"Facebook page {page['id']} has a malformed instagram_business_account"
            )
        try:
            return ResourceHandle(
                resource_id=str(page["id"]),
                name=page.get("name"),
                kind="page",
                resource_access_token=page.get("access_token"),
                meta={
                    "category": page.get("category"),
                    "instagram_business_account_id": instagram.get("id"),
                    "has_instagram": bool(instagram),
                },
            )
        except ValidationError:
            raise MalformedResponse(
                f"Facebook page {page['id']} has unexpected field types"
            ) from None
