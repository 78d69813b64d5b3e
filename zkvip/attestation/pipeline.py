"""
Attestation Pipeline
====================

Single entry point for running a threshold attestation end to end.

The pipeline owns the evidence client for the duration of a run, drives
the engine, and guarantees one terminal outcome per call: it either
returns an AttestationResult or raises one AttestationError. The progress
callback is never invoked after that outcome.

Usage:
    pipeline = AttestationPipeline(create_proof_system())
    result = await pipeline.run_attestation(
        threshold=Decimal("1"),
        source_config=SourceConfig(access_token="..."),
        on_progress=lambda event: print(event.percent, event.label),
    )

Version: 0.1.0
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from decimal import Decimal

import httpx
from pydantic import BaseModel, Field, SecretStr

from zkvip.attestation.engine import AttestationEngine, AttestationRun
from zkvip.attestation.progress import ProgressChannel, ProgressReporter, ProgressSink
from zkvip.config import (
    AttestationSettings,
    EvidenceMode,
    EvidenceSettings,
    get_settings,
)
from zkvip.evidence import HttpEvidenceSource, create_evidence_source
from zkvip.logging import bind_context, get_logger, unbind_context
from zkvip.zk import AttestationResult, ProofSystem, create_proof_system


logger = get_logger(__name__)


class SourceConfig(BaseModel):
    """Per-run evidence source options; unset fields fall back to settings."""

    source_url: str | None = None
    access_token: SecretStr | None = None
    exchange_rate: Decimal | None = Field(default=None, gt=0)
    mode: EvidenceMode | None = None


class AttestationPipeline:
    """
    Orchestrates evidence acquisition, verification, extraction and proving.

    Holds no per-run state, so concurrent runs on one pipeline are
    independent.
    """

    def __init__(
        self,
        proof_system: ProofSystem,
        evidence_config: EvidenceSettings | None = None,
        attestation_config: AttestationSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the pipeline.

        Args:
            proof_system: Proof system used by every run
            evidence_config: Evidence source settings
            attestation_config: Attestation settings
            transport: Optional httpx transport for the evidence client
        """
        settings = get_settings()
        self.evidence_config = evidence_config or settings.evidence
        self.attestation_config = attestation_config or settings.attestation
        self.engine = AttestationEngine(proof_system, self.attestation_config)
        self._transport = transport

    @property
    def proof_system(self) -> ProofSystem:
        return self.engine.proof_system

    @asynccontextmanager
    async def _open_source(
        self,
        source_config: SourceConfig,
    ) -> AsyncGenerator[HttpEvidenceSource, None]:
        config = self.evidence_config
        if source_config.mode is not None:
            config = config.model_copy(update={"mode": source_config.mode})

        if self._transport is not None:
            source = HttpEvidenceSource(config, transport=self._transport)
        else:
            source = create_evidence_source(config)

        async with source:
            yield source

    async def run_attestation(
        self,
        threshold: Decimal | int | str,
        source_config: SourceConfig | None = None,
        on_progress: ProgressSink | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
        buffered: bool = False,
        run: AttestationRun | None = None,
    ) -> AttestationResult:
        """
        Run one attestation attempt.

        Args:
            threshold: Required amount in the target currency
            source_config: Evidence source options for this run
            on_progress: Progress consumer
            cancel_event: Set to cancel the run between stages
            buffered: Deliver progress through a bounded channel so a slow
                consumer cannot stall the pipeline
            run: Optional state holder to observe the run

        Returns:
            A valid AttestationResult

        Raises:
            AttestationError: The terminal failure of this attempt
        """
        source_config = source_config or SourceConfig()
        run = run or AttestationRun()

        channel: ProgressChannel | None = None
        sink = on_progress
        if buffered and on_progress is not None:
            channel = ProgressChannel(on_progress, self.attestation_config.progress_buffer_size)
            channel.start()
            sink = channel

        reporter = ProgressReporter(sink)
        bind_context(attempt_id=run.attempt_id)

        try:
            async with self._open_source(source_config) as source:
                return await self.engine.attest(
                    threshold,
                    source,
                    reporter,
                    exchange_rate=source_config.exchange_rate,
                    source_url=source_config.source_url,
                    credential=source_config.access_token,
                    cancel_event=cancel_event,
                    run=run,
                )
        finally:
            reporter.close()
            if channel is not None:
                await channel.aclose()
            unbind_context("attempt_id")


async def run_attestation(
    threshold: Decimal | int | str,
    source_config: SourceConfig | None = None,
    on_progress: ProgressSink | None = None,
    *,
    proof_system: ProofSystem | None = None,
    cancel_event: asyncio.Event | None = None,
    buffered: bool = False,
) -> AttestationResult:
    """
    Run one attestation with a pipeline built from settings.

    Args:
        threshold: Required amount in the target currency
        source_config: Evidence source options
        on_progress: Progress consumer
        proof_system: Proof system to use (created from settings if omitted)
        cancel_event: Set to cancel the run between stages
        buffered: Decouple progress delivery through a bounded channel
    """
    pipeline = AttestationPipeline(proof_system or create_proof_system())
    return await pipeline.run_attestation(
        threshold,
        source_config,
        on_progress,
        cancel_event=cancel_event,
        buffered=buffered,
    )
