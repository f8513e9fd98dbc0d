"""
Recently-seen event stores used by the dispatcher for de-duplication.

``MemorySeenStore`` is per-process: with several workers, a redelivery that
lands on a different process is dispatched again.  ``DatabaseSeenStore``
shares the marker through the ``processed_webhook_events`` table and closes
that gap.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Callable, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import ProcessedWebhookEvent

logger = logging.getLogger(__name__)


class SeenStore(Protocol):
    async def mark_seen(self, key: str) -> bool:
        """Record ``key``; True if it was new, False if already present."""
        ...


class MemorySeenStore:
    """Bounded, time-boxed set of recently seen keys."""

    def __init__(
        self,
        ttl_seconds: float = 259200,
        max_entries: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._seen: "OrderedDict[str, float]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._seen)

    def _evict(self, now: float) -> None:
        while self._seen:
            key, expires = next(iter(self._seen.items()))
            if expires > now and len(self._seen) <= self._max_entries:
                break
            self._seen.popitem(last=False)

    async def mark_seen(self, key: str) -> bool:
        # no await between check and insert, so this is atomic on the event loop
        now = self._clock()
        self._evict(now)
        if key in self._seen:
            return False
        self._seen[key] = now + self._ttl
        if len(self._seen) > self._max_entries:
            self._seen.popitem(last=False)
        return True


class DatabaseSeenStore:
    """Cross-instance dedup through a unique-key insert."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def mark_seen(self, key: str) -> bool:
        async with self._session_factory() as session:
            try:
                session.add(ProcessedWebhookEvent(dedup_key=key))
                await session.commit()
            except IntegrityError:
                await session.rollback()
                return False
        return True
