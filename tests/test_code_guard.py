"""
Tests for CodeGuard — single-use admission control over the claim table.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from unittest.mock import AsyncMock, MagicMock

from core.code_guard import ClaimResult, CodeGuard, hash_code
from core.errors import ClaimStoreError, MissingParameter
from database.helpers import purge_expired_code_claims
from database.models import CodeClaim


class TestHashCode:
    def test_full_sha256_hex(self):
        digest = hash_code("abc123")
        assert len(digest) == 64
        assert digest == "6ca13d52ca70c883e0f0bb101e425a89e8624de51db2d2392593af6a84118090"

    def test_distinct_codes_distinct_hashes(self):
        assert hash_code("abc123") != hash_code("abc124")


class TestClaim:
    @pytest.mark.asyncio
    async def test_first_claim_granted_second_rejected(self, session_factory):
        guard = CodeGuard(session_factory)

        assert await guard.claim("abc123") is ClaimResult.GRANTED
        await asyncio.sleep(0.01)
        assert await guard.claim("abc123") is ClaimResult.ALREADY_CLAIMED
        assert await guard.claim("xyz789") is ClaimResult.GRANTED

    @pytest.mark.asyncio
    async def test_independent_guards_share_the_store(self, session_factory):
        first, second = CodeGuard(session_factory), CodeGuard(session_factory)

        assert await first.claim("shared-code") is ClaimResult.GRANTED
        assert await second.claim("shared-code") is ClaimResult.ALREADY_CLAIMED

    @pytest.mark.asyncio
    async def test_concurrent_claims_grant_exactly_one(self, session_factory):
        guards = [CodeGuard(session_factory) for _ in range(10)]

        results = await asyncio.gather(*(g.claim("race-code") for g in guards))

        assert results.count(ClaimResult.GRANTED) == 1
        assert results.count(ClaimResult.ALREADY_CLAIMED) == 9

    @pytest.mark.asyncio
    async def test_raw_code_is_never_stored(self, session_factory):
        guard = CodeGuard(session_factory)
        await guard.claim("secret-code", provider="facebook")

        async with session_factory() as session:
            rows = (await session.execute(select(CodeClaim))).scalars().all()
        assert len(rows) == 1
        assert rows[0].code_hash == hash_code("secret-code")
        assert rows[0].provider == "facebook"
        assert rows[0].claimed_at is not None

    @pytest.mark.asyncio
    async def test_empty_code_rejected_without_touching_store(self, session_factory):
        guard = CodeGuard(session_factory)
        with pytest.raises(MissingParameter):
            await guard.claim("   ")

        async with session_factory() as session:
            count = (await session.execute(select(func.count()).select_from(CodeClaim))).scalar()
        assert count == 0

    @pytest.mark.asyncio
    async def test_store_failure_fails_closed(self):
        session = MagicMock()
        session.commit = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("down")))
        session.rollback = AsyncMock()
        factory = MagicMock()
        factory.return_value.__aenter__ = AsyncMock(return_value=session)
        factory.return_value.__aexit__ = AsyncMock(return_value=False)

        guard = CodeGuard(factory)
        with pytest.raises(ClaimStoreError):
            await guard.claim("abc123")
        session.rollback.assert_awaited_once()


class TestRetention:
    @pytest.mark.asyncio
    async def test_purge_removes_only_expired_claims(self, session_factory):
        old = datetime.now(timezone.utc) - timedelta(days=3)
        async with session_factory() as session:
            session.add(CodeClaim(code_hash=hash_code("old"), claimed_at=old))
            session.add(CodeClaim(code_hash=hash_code("fresh")))
            await session.commit()

        removed = await purge_expired_code_claims(session_factory, retention_seconds=86400)

        assert removed == 1
        guard = CodeGuard(session_factory)
        assert await guard.claim("fresh") is ClaimResult.ALREADY_CLAIMED
