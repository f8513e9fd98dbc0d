"""
Tests for ExchangeCoordinator — claim-then-exchange, exactly once per code.
"""

import asyncio

import httpx
import pytest

from connectors.base import ConnectorCredentials
from connectors.linkedin import LinkedInConnector
from core.code_guard import ClaimResult, CodeGuard
from core.errors import (
    DuplicateRequest,
    GatewayError,
    MalformedResponse,
    MissingParameter,
    ProviderProtocolError,
    RedirectNotAllowed,
    TransportError,
    UnknownProvider,
)
from core.exchange_coordinator import ExchangeCoordinator, ExchangeOutcome, ExchangeStatus

REDIRECT = "https://app.test/oauth/callback"


def _coordinator(session_factory, registry, allowlist=()):
    return ExchangeCoordinator(CodeGuard(session_factory), registry, allowlist)


class TestExchange:
    @pytest.mark.asyncio
    async def test_success(self, session_factory, registry, stub_connector):
        coord = _coordinator(session_factory, registry)

        outcome = await coord.exchange("linkedin", "abc123", REDIRECT, "workspace-1")

        assert outcome.status is ExchangeStatus.EXCHANGED
        assert outcome.ok
        assert outcome.correlation_key == "workspace-1"
        assert outcome.raise_for_outcome().access_token == "token-for-abc123"
        assert stub_connector.calls == ["abc123"]

    @pytest.mark.asyncio
    async def test_second_submission_is_duplicate(self, session_factory, registry, stub_connector):
        coord = _coordinator(session_factory, registry)

        await coord.exchange("linkedin", "abc123", REDIRECT, "workspace-1")
        outcome = await coord.exchange("linkedin", "abc123", REDIRECT, "workspace-1")

        assert outcome.status is ExchangeStatus.DUPLICATE
        assert stub_connector.calls == ["abc123"]
        with pytest.raises(DuplicateRequest):
            outcome.raise_for_outcome()

    @pytest.mark.asyncio
    async def test_racing_submissions_call_provider_once(self, session_factory, registry, make_connector):
        connector = make_connector(delay=0.01)
        registry.register(connector)
        coords = [_coordinator(session_factory, registry) for _ in range(2)]

        outcomes = await asyncio.gather(
            *(c.exchange("linkedin", "same-code", REDIRECT, "ws") for c in coords)
        )

        statuses = sorted(o.status.value for o in outcomes)
        assert statuses == ["duplicate", "exchanged"]
        assert connector.calls == ["same-code"]

    @pytest.mark.asyncio
    async def test_provider_error_passed_through_and_claim_kept(self, session_factory, registry, make_connector):
        error = ProviderProtocolError("linkedin", "invalid_grant", "code expired")
        failing = make_connector(error=error)
        registry.register(failing)
        coord = _coordinator(session_factory, registry)

        outcome = await coord.exchange("linkedin", "burned", REDIRECT, "ws")

        assert outcome.status is ExchangeStatus.FAILED
        assert outcome.error is error
        with pytest.raises(ProviderProtocolError) as exc_info:
            outcome.raise_for_outcome()
        assert exc_info.value is error

        retry = await coord.exchange("linkedin", "burned", REDIRECT, "ws")
        assert retry.status is ExchangeStatus.DUPLICATE
        assert failing.calls == ["burned"]

    @pytest.mark.asyncio
    async def test_transport_error_does_not_release_claim(self, session_factory, registry, make_connector):
        registry.register(make_connector(error=TransportError("timed out")))
        coord = _coordinator(session_factory, registry)

        outcome = await coord.exchange("linkedin", "slow", REDIRECT, "ws")
        assert isinstance(outcome.error, TransportError)
        assert await CodeGuard(session_factory).claim("slow") is ClaimResult.ALREADY_CLAIMED

    @pytest.mark.asyncio
    async def test_wrongly_typed_provider_body_is_failed_outcome(self, session_factory, registry):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={"access_token": 12345}))
        registry.register(LinkedInConnector(ConnectorCredentials("id", "secret"), transport=transport))
        coord = _coordinator(session_factory, registry)

        outcome = await coord.exchange("linkedin", "typed", REDIRECT, "ws")

        assert outcome.status is ExchangeStatus.FAILED
        assert isinstance(outcome.error, MalformedResponse)
        with pytest.raises(MalformedResponse):
            outcome.raise_for_outcome()

    def test_exchanged_outcome_without_credential_raises_gateway_error(self):
        outcome = ExchangeOutcome(ExchangeStatus.EXCHANGED, "linkedin", "ws")
        with pytest.raises(GatewayError):
            outcome.raise_for_outcome()

    @pytest.mark.asyncio
    async def test_cancellation_keeps_claim(self, session_factory, registry, make_connector):
        blocking = make_connector(block=True)
        registry.register(blocking)
        coord = _coordinator(session_factory, registry)

        task = asyncio.create_task(coord.exchange("linkedin", "cancelled", REDIRECT, "ws"))
        await asyncio.wait_for(blocking.started.wait(), timeout=5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert await CodeGuard(session_factory).claim("cancelled") is ClaimResult.ALREADY_CLAIMED


class TestValidationBeforeClaim:
    @pytest.mark.asyncio
    async def test_unknown_provider(self, session_factory, registry):
        with pytest.raises(UnknownProvider):
            await _coordinator(session_factory, registry).exchange("myspace", "c", REDIRECT, "ws")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "code, redirect, key, tag",
        [
            ("", REDIRECT, "ws", "missing_code"),
            ("c", "", "ws", "missing_redirect_uri"),
            ("c", REDIRECT, None, "missing_correlation_key"),
        ],
    )
    async def test_missing_parameters(self, session_factory, registry, code, redirect, key, tag):
        with pytest.raises(MissingParameter) as exc_info:
            await _coordinator(session_factory, registry).exchange("linkedin", code, redirect, key)
        assert exc_info.value.error == tag

    @pytest.mark.asyncio
    async def test_pkce_provider_needs_verifier_and_code_survives(self, session_factory, registry, make_connector):
        registry.register(make_connector("twitter", pkce=True))
        coord = _coordinator(session_factory, registry)

        with pytest.raises(MissingParameter) as exc_info:
            await coord.exchange("twitter", "tw-code", REDIRECT, "ws")
        assert exc_info.value.error == "missing_code_verifier"

        outcome = await coord.exchange("twitter", "tw-code", REDIRECT, "ws", code_verifier="v")
        assert outcome.status is ExchangeStatus.EXCHANGED

    @pytest.mark.asyncio
    async def test_redirect_allowlist(self, session_factory, registry, stub_connector):
        coord = _coordinator(session_factory, registry, allowlist=[REDIRECT])

        with pytest.raises(RedirectNotAllowed):
            await coord.exchange("linkedin", "c", "https://evil.test/cb", "ws")
        assert stub_connector.calls == []

        outcome = await coord.exchange("linkedin", "c", REDIRECT, "ws")
        assert outcome.ok
