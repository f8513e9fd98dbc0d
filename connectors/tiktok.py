"""
TikTokConnector — OAuth2 with PKCE against the v2 token endpoint.

TikTok names the client id ``client_key`` and may wrap the token payload in
a ``data`` object; both shapes are accepted.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from connectors.base import BaseConnector
from connectors.models import ProviderCredential

_TT_AUTH_URL = "https://www.tiktok.com/v2/auth/authorize/"
_TT_TOKEN_URL = "https://open.tiktokapis.com/v2/oauth/token/"


class TikTokConnector(BaseConnector):
    """OAuth2 connector for TikTok."""

    @property
    def provider_name(self) -> str:
        return "tiktok"

    @property
    def display_name(self) -> str:
        return "TikTok"

    @property
    def scopes(self) -> List[str]:
        return ["user.info.basic", "video.upload"]

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
            "client_key": self._credentials.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": ",".join(self.scopes),
            "state": state,
        }
        if code_challenge:
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"
        return f"{_TT_AUTH_URL}?{urlencode(params)}"

    def _has_error(self, data: Dict[str, Any]) -> bool:
        err = data.get("error")
        # v2 envelopes report success as {"error": {"code": "ok"}}
        if isinstance(err, dict):
            return err.get("code") not in (None, "", "ok")
        return bool(err or data.get("error_code"))

    async def _exchange(
        self,
        client: httpx.AsyncClient,
        code: str,
        redirect_uri: str,
        code_verifier: Optional[str],
    ) -> ProviderCredential:
        body = await self._request_json(
            client,
            "POST",
            _TT_TOKEN_URL,
            hop="code exchange",
            data={
                "client_key": self._credentials.client_id,
                "client_secret": self._credentials.client_secret,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "code_verifier": code_verifier or "",
            },
            headers={"Cache-Control": "no-cache"},
        )
        token_data = body.get("data") if isinstance(body.get("data"), dict) else body
        open_id = token_data.get("open_id")
        return self._build_credential(token_data, account_id=str(open_id) if open_id else None)
