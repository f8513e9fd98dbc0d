"""
Request / response bodies for the public HTTP API (camelCase on the wire).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from connectors.models import ProviderCredential


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TokenExchangeRequest(_CamelModel):
    """
    Fields are optional here so that a missing one is reported with the
    gateway's ``missing_<field>`` tag rather than a generic validation error.
    """

    code: Optional[str] = None
    redirect_uri: Optional[str] = None
    correlation_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("correlationKey", "correlation_key", "workspaceId"),
    )
    code_verifier: Optional[str] = None


class TokenRefreshRequest(_CamelModel):
    refresh_token: Optional[str] = None


class ResourceOut(_CamelModel):
    resource_id: str
    name: Optional[str] = None
    kind: str
    resource_access_token: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)


class TokenExchangeResponse(_CamelModel):
    provider: str
    correlation_key: Optional[str] = None
    access_token: str
    token_type: str
    expires_in: Optional[int] = None
    expires_at: Optional[datetime] = None
    refresh_token: Optional[str] = None
    scope: List[str] = Field(default_factory=list)
    account_id: Optional[str] = None
    resources: Optional[List[ResourceOut]] = None

    @classmethod
    def from_credential(
        cls, credential: ProviderCredential, correlation_key: Optional[str] = None,
    ) -> "TokenExchangeResponse":
        return cls(
            provider=credential.provider,
            correlation_key=correlation_key,
            access_token=credential.access_token,
            token_type=credential.token_type,
            expires_in=credential.expires_in,
            expires_at=credential.expires_at,
            refresh_token=credential.refresh_token,
            scope=credential.scope,
            account_id=credential.account_id,
            resources=[
                ResourceOut(**r.model_dump()) for r in credential.resources
            ] or None,
        )

    def to_body(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
