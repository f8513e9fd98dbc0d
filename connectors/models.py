"""
Credential models produced by a connector's token exchange.

The gateway hands these back to the caller; persisting them is the job of
the connected-accounts service, not of this package.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ResourceHandle(BaseModel):
    """A resource reachable through the credential (e.g. a Facebook page)."""

    resource_id: str
    name: Optional[str] = None
    kind: str = "page"
    resource_access_token: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)


class ProviderCredential(BaseModel):
    provider: str
    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[datetime] = None   # None → non-expiring long-lived token
    refresh_token: Optional[str] = None
    scope: List[str] = Field(default_factory=list)
    account_id: Optional[str] = None
    resources: List[ResourceHandle] = Field(default_factory=list)
