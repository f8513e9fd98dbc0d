"""
TwitterConnector — OAuth2 with PKCE; client credentials go in HTTP Basic auth.
"""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import urlencode

import httpx

from connectors.base import BaseConnector
from connectors.models import ProviderCredential

_TW_AUTH_URL = "https://twitter.com/i/oauth2/authorize"
_TW_TOKEN_URL = "https://api.twitter.com/2/oauth2/token"


class TwitterConnector(BaseConnector):
    """OAuth2 connector for Twitter / X."""

    @property
    def provider_name(self) -> str:
        return "twitter"

    @property
    def display_name(self) -> str:
        return "Twitter"

    @property
    def scopes(self) -> List[str]:
        return ["tweet.read", "users.read", "offline.access"]

    @property
    def requires_pkce(self) -> bool:
        return True

    def get_auth_url(
        self,
        redirect_uri: str,
        state: str,
        code_challenge: Optional[str] = None,
    ) -> str:
        params = {
            "client_id": self._credentials.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "state": state,
        }
        if code_challenge:
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"
        return f"{_TW_AUTH_URL}?{urlencode(params)}"

    async def _exchange(
        self,
        client: httpx.AsyncClient,
        code: str,
        redirect_uri: str,
        code_verifier: Optional[str],
    ) -> ProviderCredential:
        token_data = await self._request_json(
            client,
            "POST",
            _TW_TOKEN_URL,
            hop="code exchange",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "code_verifier": code_verifier or "",
            },
            auth=(self._credentials.client_id, self._credentials.client_secret),
        )
        return self._build_credential(token_data)

    @property
    def supports_refresh(self) -> bool:
        return True

    async def _refresh(
        self,
        client: httpx.AsyncClient,
        refresh_token: str,
    ) -> ProviderCredential:
        token_data = await self._request_json(
            client,
            "POST",
            _TW_TOKEN_URL,
            hop="token refresh",
            data={"grant_type": "refresh_token", "refresh_token": refresh_token},
            auth=(self._credentials.client_id, self._credentials.client_secret),
        )
        return self._build_credential(token_data)
