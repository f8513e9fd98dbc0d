"""
LinkedInConnector — single-hop OAuth2 exchange (form-encoded POST).
"""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import urlencode

import httpx

from connectors.base import BaseConnector
from connectors.models import ProviderCredential

_LI_AUTH_URL = "https://www.linkedin.com/oauth/v2/authorization"
_LI_TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"


class LinkedInConnector(BaseConnector):
    """OAuth2 connector for LinkedIn member posting."""

    @property
    def provider_name(self) -> str:
        return "linkedin"

    @property
    def display_name(self) -> str:
        return "LinkedIn"

    @property
    def scopes(self) -> List[str]:
        return ["openid", "profile", "email", "w_member_social"]

    def get_auth_url(
        self,
        redirect_uri: str,
        state: str,
        code_challenge: Optional[str] = None,
    ) -> str:
        params = {
            "response_type": "code",
            "client_id": self._credentials.client_id,
            "redirect_uri": redirect_uri,
            "state": state,
            "scope": " ".join(self.scopes),
        }
        return f"{_LI_AUTH_URL}?{urlencode(params)}"

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
            _LI_TOKEN_URL,
            hop="code exchange",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": self._credentials.client_id,
                "client_secret": self._credentials.client_secret,
            },
        )
        return self._build_credential(token_data)
