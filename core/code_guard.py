"""
CodeGuard — single-use admission control for OAuth authorization codes.

A code is "claimed" by inserting its SHA-256 hash into ``oauth_code_claims``.
The primary-key constraint makes the insert atomic across every worker
process, so exactly one caller per code gets ``ClaimResult.GRANTED``.

The claim only decides who may *attempt* the provider exchange.  It is never
released afterwards: the provider burns the code on first use whether the
exchange succeeded or not.
"""

from __future__ import annotations

import hashlib
import logging
from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.errors import ClaimStoreError, MissingParameter
from database.models import CodeClaim

logger = logging.getLogger(__name__)


class ClaimResult(str, Enum):
    GRANTED = "granted"
    ALREADY_CLAIMED = "already_claimed"


def hash_code(raw_code: str) -> str:
    """Full SHA-256 hex digest of the raw code (64 chars)."""
    return hashlib.sha256(raw_code.encode("utf-8")).hexdigest()


class CodeGuard:
    """Claims authorization codes against the shared claim table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def claim(self, raw_code: str, provider: Optional[str] = None) -> ClaimResult:
        """
        Attempt to claim ``raw_code``.

        Returns
        -------
        ClaimResult.GRANTED          – this caller alone may exchange the code
        ClaimResult.ALREADY_CLAIMED  – someone else already did; do not retry

        Raises
        ------
        MissingParameter  – empty code
        ClaimStoreError   – the store failed for any other reason
        """
        if not raw_code or not raw_code.strip():
            raise MissingParameter("code", "Authorization code is required")

        code_hash = hash_code(raw_code)
        async with self._session_factory() as session:
            try:
                session.add(CodeClaim(code_hash=code_hash, provider=provider))
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.info("Code %s… already claimed", code_hash[:12])
                return ClaimResult.ALREADY_CLAIMED
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error("Claim store failure for code %s…: %s", code_hash[:12], exc)
                raise ClaimStoreError("Could not record authorization code claim") from exc

        logger.debug("Code %s… claimed (provider=%s)", code_hash[:12], provider)
        return ClaimResult.GRANTED
