"""
YouTubeConnector — Google OAuth2 for YouTube channel access.

Single-hop code exchange against Google's token endpoint.  ``access_type``
is set to ``offline`` so Google issues a refresh token, which ``refresh``
later trades for fresh access tokens.
"""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import urlencode

import httpx

from connectors.base import BaseConnector
from connectors.models import ProviderCredential

_GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
_GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"


class YouTubeConnector(BaseConnector):
    """OAuth2 connector for YouTube (Google accounts)."""

    @property
    def provider_name(self) -> str:
        return "youtube"

    @property
    def display_name(self) -> str:
        return "YouTube"

    @property
    def scopes(self) -> List[str]:
        return [
            "https://www.googleapis.com/auth/youtube.readonly",
            "https://www.googleapis.com/auth/youtube.upload",
        ]

    @property
    def supports_refresh(self) -> bool:
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
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{_GOOGLE_AUTH_URL}?{urlencode(params)}"

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
            _GOOGLE_TOKEN_URL,
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

    async def _refresh(
        self,
        client: httpx.AsyncClient,
        refresh_token: str,
    ) -> ProviderCredential:
        token_data = await self._request_json(
            client,
            "POST",
            _GOOGLE_TOKEN_URL,
            hop="token refresh",
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self._credentials.client_id,
                "client_secret": self._credentials.client_secret,
            },
        )
        return self._build_credential(token_data)
