"""
Pydantic models for verified webhook events and dispatch results.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class WebhookEvent(BaseModel):
    event_id: str
    type: str
    provider: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    received_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def dedup_key(self) -> str:
        return f"{self.provider}:{self.event_id}"


class DispatchStatus(str, Enum):
    DISPATCHED = "dispatched"
    DUPLICATE = "duplicate"
    UNHANDLED = "unhandled"
    FAILED = "failed"


class DispatchResult(BaseModel):
    event_id: str
    status: DispatchStatus
    handled_by: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
