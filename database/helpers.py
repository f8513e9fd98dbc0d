"""
Database helper functions — schema bootstrap and retention clean-up.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from database.models import Base, CodeClaim, ProcessedWebhookEvent

logger = logging.getLogger(__name__)


async def init_models(engine: AsyncEngine) -> None:
    """Create missing tables (idempotent; real deployments run migrations)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def purge_expired_code_claims(
    session_factory: async_sessionmaker[AsyncSession],
    retention_seconds: int,
) -> int:
    """
    Delete ``CodeClaim`` rows older than the retention window.

    Provider codes expire within minutes, so a claim older than the window
    can never be presented successfully again.  Returns the number of rows
    removed.
    """
    cutoff = datetime.now(timezone.utc) - timedelta(seconds=retention_seconds)
    async with session_factory() as session:
        result = await session.execute(
            delete(CodeClaim).where(CodeClaim.claimed_at < cutoff)
        )
        await session.commit()
    removed = result.rowcount or 0
    if removed:
        logger.info("Purged %d code claims older than %ds", removed, retention_seconds)
    return removed


async def purge_processed_webhook_events(
    session_factory: async_sessionmaker[AsyncSession],
    ttl_seconds: int,
) -> int:
    """Delete dedup markers that fall outside the provider's redelivery window."""
    cutoff = datetime.now(timezone.utc) - timedelta(seconds=ttl_seconds)
    async with session_factory() as session:
        result = await session.execute(
            delete(ProcessedWebhookEvent).where(ProcessedWebhookEvent.seen_at < cutoff)
        )
        await session.commit()
    removed = result.rowcount or 0
    if removed:
        logger.info("Purged %d processed webhook markers", removed)
    return removed
