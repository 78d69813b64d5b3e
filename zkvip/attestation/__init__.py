"""
Attestation Module
==================

Threshold attestation: prove a bank balance covers a threshold without
revealing it.

Usage:
    from zkvip.attestation import AttestationPipeline, SourceConfig
    from zkvip.zk import create_proof_system

    pipeline = AttestationPipeline(create_proof_system())
    result = await pipeline.run_attestation(
        threshold=Decimal("1"),
        source_config=SourceConfig(access_token=token),
        on_progress=print,
    )
"""

from zkvip.attestation.engine import (
    COLLECTING_STAGES,
    TERMINAL_STATES,
    AttestationEngine,
    AttestationRun,
    AttestationState,
    EvidenceSource,
)
from zkvip.attestation.pipeline import AttestationPipeline, SourceConfig, run_attestation
from zkvip.attestation.progress import (
    ProgressChannel,
    ProgressEvent,
    ProgressReporter,
    ProgressSink,
    remap_progress,
)


__all__ = [
    # Engine
    "AttestationEngine",
    "AttestationRun",
    "AttestationState",
    "EvidenceSource",
    "COLLECTING_STAGES",
    "TERMINAL_STATES",
    # Pipeline
    "AttestationPipeline",
    "SourceConfig",
    "run_attestation",
    # Progress
    "ProgressEvent",
    "ProgressSink",
    "ProgressReporter",
    "ProgressChannel",
    "remap_progress",
]
