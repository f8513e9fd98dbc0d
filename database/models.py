"""
SQLAlchemy ORM models for the gateway's shared state.

Both tables are insert-only: the primary-key uniqueness constraint is the
only synchronisation between independent worker processes.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class CodeClaim(Base):
    __tablename__ = "oauth_code_claims"

    code_hash = Column(String(64), primary_key=True)   # full SHA-256 hex of the raw code
    provider = Column(String(32))
    claimed_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )


class ProcessedWebhookEvent(Base):
    __tablename__ = "processed_webhook_events"

    dedup_key = Column(String(255), primary_key=True)  # "<provider>:<event_id>"
    seen_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
