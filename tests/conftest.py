"""
Shared fixtures: a file-backed SQLite claim store and a stub connector.
"""

import asyncio
from typing import List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from connectors.base import BaseConnector, ConnectorCredentials
from connectors.models import ProviderCredential
from connectors.registry import ConnectorRegistry
from database.models import Base


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gateway.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture(autouse=True)
def _reset_registry():
    ConnectorRegistry.reset()
    yield
    ConnectorRegistry.reset()


class StubConnector(BaseConnector):
    """Connector whose exchange is scripted in-process (no HTTP)."""

    def __init__(
        self,
        name: str = "linkedin",
        *,
        pkce: bool = False,
        error: Optional[Exception] = None,
        block: bool = False,
        delay: float = 0.0,
    ) -> None:
        super().__init__(ConnectorCredentials("client-id", "client-secret"))
        self._name = name
        self._pkce = pkce
        self._error = error
        self._block = block
        self._delay = delay
        self.calls: List[str] = []
        self.started = asyncio.Event()

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def display_name(self) -> str:
        return self._name.title()

    @property
    def scopes(self) -> List[str]:
        return []

    @property
    def requires_pkce(self) -> bool:
        return self._pkce

    def get_auth_url(self, redirect_uri, state, code_challenge=None) -> str:
        return f"https://example.test/auth?state={state}"

    async def exchange(self, code, redirect_uri, code_verifier=None) -> ProviderCredential:
        self.calls.append(code)
        self.started.set()
        if self._block:
            await asyncio.Event().wait()
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return ProviderCredential(
            provider=self._name,
            access_token=f"token-for-{code}",
            expires_in=3600,
        )

    async def _exchange(self, client, code, redirect_uri, code_verifier):
        raise NotImplementedError


@pytest.fixture
def stub_connector():
    return StubConnector()


@pytest.fixture
def registry(stub_connector):
    reg = ConnectorRegistry()
    reg.register(stub_connector)
    return reg


@pytest.fixture
def make_connector():
    """Factory for extra scripted connectors (``make_connector(error=...)``)."""
    return StubConnector
