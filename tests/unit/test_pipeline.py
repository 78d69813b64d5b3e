"""
Unit Tests for the Attestation Pipeline
=======================================

Tests for AttestationPipeline wiring: evidence client ownership, per-run
source options and progress delivery guarantees.
"""

import asyncio
from decimal import Decimal

import pytest
import structlog
from pydantic import SecretStr

from zkvip.attestation import AttestationPipeline, AttestationRun, ProgressEvent, SourceConfig
from zkvip.config import AttestationSettings, EvidenceMode, EvidenceSettings
from zkvip.errors import InsufficientBalance, NoAccountsFound, SourceRejected
from zkvip.zk import MockProofSystem


@pytest.fixture
def settings_pair():
    evidence = EvidenceSettings(mode=EvidenceMode.HTTP, source_url="https://bank.test/accounts")
    attestation = AttestationSettings(default_exchange_rate=Decimal("0.18"))
    return evidence, attestation


class TestRunAttestation:
    """Tests for AttestationPipeline.run_attestation."""

    @pytest.mark.asyncio
    async def test_success(self, bank_data, json_transport, settings_pair):
        transport = json_transport(bank_data)
        pipeline = AttestationPipeline(MockProofSystem(), *settings_pair, transport=transport)

        result = await pipeline.run_attestation(Decimal("1"))

        assert result.is_valid
        assert len(transport.requests) == 1
        assert str(transport.requests[0].url) == "https://bank.test/accounts"

    @pytest.mark.asyncio
    async def test_source_config_overrides(self, bank_data, json_transport, settings_pair):
        transport = json_transport(bank_data)
        pipeline = AttestationPipeline(MockProofSystem(), *settings_pair, transport=transport)

        # 12500.50 at rate 1 covers 12000, at the default 0.18 it does not
        await pipeline.run_attestation(
            "12000",
            SourceConfig(
                source_url="https://other.test/v2/accounts",
                access_token=SecretStr("token-123"),
                exchange_rate=Decimal("1"),
            ),
        )

        request = transport.requests[0]
        assert str(request.url) == "https://other.test/v2/accounts"
        assert request.headers["Authorization"] == "Bearer token-123"

    @pytest.mark.asyncio
    async def test_sample_mode_override(self, settings_pair):
        pipeline = AttestationPipeline(MockProofSystem(), *settings_pair)

        result = await pipeline.run_attestation("1", SourceConfig(mode=EvidenceMode.SAMPLE))

        assert result.is_valid

    @pytest.mark.asyncio
    async def test_rejected_source(self, json_transport, settings_pair):
        pipeline = AttestationPipeline(
            MockProofSystem(), *settings_pair, transport=json_transport({}, status_code=401)
        )

        with pytest.raises(SourceRejected):
            await pipeline.run_attestation("1")

    @pytest.mark.asyncio
    async def test_no_accounts(self, json_transport, settings_pair):
        pipeline = AttestationPipeline(
            MockProofSystem(), *settings_pair, transport=json_transport({"accounts": []})
        )

        with pytest.raises(NoAccountsFound):
            await pipeline.run_attestation("1")

    def test_invalid_exchange_rate_override(self):
        with pytest.raises(ValueError):
            SourceConfig(exchange_rate=Decimal("0"))

    @pytest.mark.asyncio
    async def test_attempt_id_unbound_after_run(self, bank_data, json_transport, settings_pair):
        pipeline = AttestationPipeline(
            MockProofSystem(), *settings_pair, transport=json_transport(bank_data)
        )

        await pipeline.run_attestation("1")

        assert "attempt_id" not in structlog.contextvars.get_contextvars()

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_independent(self, bank_data, json_transport, settings_pair):
        pipeline = AttestationPipeline(
            MockProofSystem(), *settings_pair, transport=json_transport(bank_data)
        )

        results = await asyncio.gather(*(pipeline.run_attestation("1") for _ in range(5)))

        assert all(r.is_valid for r in results)
        assert len({r.public_inputs.nonce for r in results}) == 5


class TestProgressDelivery:
    """Tests for progress delivery through the pipeline."""

    @pytest.mark.asyncio
    async def test_no_events_after_failure(self, bank_data, json_transport, settings_pair):
        events: list[ProgressEvent] = []
        run = AttestationRun()
        pipeline = AttestationPipeline(
            MockProofSystem(), *settings_pair, transport=json_transport(bank_data)
        )

        with pytest.raises(InsufficientBalance):
            await pipeline.run_attestation("100000", on_progress=events.append, run=run)

        delivered = len(events)
        await asyncio.sleep(0)

        assert len(events) == delivered
        assert run.is_terminal

    @pytest.mark.asyncio
    async def test_buffered_delivery_completes_before_return(
        self, bank_data, json_transport, settings_pair
    ):
        """Test a slow async consumer gets every event before the call returns."""
        received: list[int] = []

        async def slow_consumer(event: ProgressEvent) -> None:
            await asyncio.sleep(0.001)
            received.append(event.percent)

        pipeline = AttestationPipeline(
            MockProofSystem(), *settings_pair, transport=json_transport(bank_data)
        )

        await pipeline.run_attestation("1", on_progress=slow_consumer, buffered=True)

        assert received[-1] == 100
        assert received == sorted(received)

    @pytest.mark.asyncio
    async def test_failing_consumer_does_not_fail_run(
        self, bank_data, json_transport, settings_pair
    ):
        def consumer(event: ProgressEvent) -> None:
            raise RuntimeError("ui gone")

        pipeline = AttestationPipeline(
            MockProofSystem(), *settings_pair, transport=json_transport(bank_data)
        )

        result = await pipeline.run_attestation("1", on_progress=consumer)

        assert result.is_valid
