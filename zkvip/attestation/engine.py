"""
Attestation Engine
==================

Drives one threshold attestation from evidence to proof.

States:
    IDLE -> COLLECTING(0..k) -> PROVING -> FINALIZED_VALID | FINALIZED_INVALID

Any failure moves the run to ABORTED, which is also terminal. There is no
partial attestation and no resumption: a new attempt starts over with a
fresh nonce.

The balance comparison happens before any proving work. A failing
comparison aborts with InsufficientBalance and the proof system is never
called.

Version: 0.1.0
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Protocol

from pydantic import SecretStr

from zkvip.attestation.progress import (
    ProgressReporter,
    ProgressSink,
    remap_progress,
)
from zkvip.config import AttestationSettings, get_settings
from zkvip.errors import (
    AttestationError,
    Cancelled,
    ErrorKind,
    InsufficientBalance,
    ProofInvalid,
    ProofSynthesisFailed,
)
from zkvip.evidence import (
    Evidence,
    as_decimal,
    normalize,
    select_account,
    to_micro_units,
    verify,
)
from zkvip.logging import get_logger
from zkvip.zk import AttestationInputs, AttestationResult, ProofSystem


logger = get_logger(__name__)


class AttestationState(str, Enum):
    """Lifecycle states of one attestation attempt."""

    IDLE = "idle"
    COLLECTING = "collecting"
    PROVING = "proving"
    FINALIZED_VALID = "finalized_valid"
    FINALIZED_INVALID = "finalized_invalid"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset(
    {
        AttestationState.FINALIZED_VALID,
        AttestationState.FINALIZED_INVALID,
        AttestationState.ABORTED,
    }
)

# Collecting checkpoints, spread evenly below the proof progress start
COLLECTING_STAGES = (
    "starting",
    "fetching evidence",
    "verifying evidence",
    "extracting accounts",
    "normalizing balance",
    "checking threshold",
    "preparing proof inputs",
)
PROVING_LABEL = "generating proof"


class EvidenceSource(Protocol):
    """Anything that can fetch evidence (see HttpEvidenceSource)."""

    async def fetch_evidence(
        self,
        source_url: str | None = None,
        credential: str | SecretStr | None = None,
    ) -> Evidence: ...


@dataclass
class AttestationRun:
    """State machine of a single attempt."""

    attempt_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: AttestationState = AttestationState.IDLE
    stage: int = 0
    abort_reason: ErrorKind | None = None
    history: list[tuple[AttestationState, int]] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, state: AttestationState, stage: int = 0) -> None:
        if self.is_terminal:
            raise RuntimeError(f"Attempt {self.attempt_id} already ended in {self.state.value}")
        self.state = state
        self.stage = stage
        self.history.append((state, stage))

    def abort(self, reason: ErrorKind) -> None:
        self.transition(AttestationState.ABORTED, self.stage)
        self.abort_reason = reason


class AttestationEngine:
    """
    Threshold attestation over bank account evidence.

    Example:
        >>> engine = AttestationEngine(MockProofSystem())
        >>> async with HttpEvidenceSource() as source:
        ...     result = await engine.attest(Decimal("1"), source, print)
        >>> result.is_valid
        True
    """

    def __init__(
        self,
        proof_system: ProofSystem,
        config: AttestationSettings | None = None,
    ) -> None:
        self.proof_system = proof_system
        self.config = config or get_settings().attestation

    def stage_percent(self, index: int) -> int:
        """Progress percentage of a collecting checkpoint."""
        return index * self.config.proof_progress_start // len(COLLECTING_STAGES)

    async def attest(
        self,
        threshold: Decimal | int | str,
        source: EvidenceSource,
        progress: ProgressSink | ProgressReporter | None = None,
        *,
        exchange_rate: Decimal | None = None,
        source_url: str | None = None,
        credential: str | SecretStr | None = None,
        cancel_event: asyncio.Event | None = None,
        run: AttestationRun | None = None,
    ) -> AttestationResult:
        """
        Attest that the best account balance covers a threshold.

        Args:
            threshold: Required amount in the target currency
            source: Evidence source to query
            progress: Sink or reporter receiving progress events
            exchange_rate: Target units per account unit (default from settings)
            source_url: Evidence endpoint override
            credential: Bearer token for the evidence source
            cancel_event: Set to cancel between stages
            run: State holder, for callers that want to observe it

        Returns:
            A valid AttestationResult

        Raises:
            AttestationError: Any pipeline failure (see zkvip.errors)
            ValueError: Negative or out-of-range threshold, non-positive rate
        """
        threshold_micro = to_micro_units(threshold, cap=False)
        rate = (
            as_decimal(exchange_rate)
            if exchange_rate is not None
            else self.config.default_exchange_rate
        )
        if not rate.is_finite() or rate <= 0:
            raise ValueError(f"Exchange rate must be positive, got {rate}")

        reporter = progress if isinstance(progress, ProgressReporter) else ProgressReporter(progress)
        run = run or AttestationRun()

        try:
            return await self._run(
                run,
                reporter,
                threshold_micro,
                rate,
                source,
                source_url,
                credential,
                cancel_event,
            )
        except AttestationError as e:
            if not run.is_terminal:
                run.abort(e.kind)
            logger.warning(
                "attestation_aborted",
                attempt_id=run.attempt_id,
                kind=e.kind.value,
                state=run.state.value,
                stage=run.stage,
            )
            raise
        except asyncio.CancelledError:
            if not run.is_terminal:
                run.abort(ErrorKind.CANCELLED)
            logger.info("attestation_task_cancelled", attempt_id=run.attempt_id, stage=run.stage)
            raise

    def _checkpoint(
        self,
        run: AttestationRun,
        reporter: ProgressReporter,
        index: int,
        cancel_event: asyncio.Event | None,
    ) -> None:
        label = COLLECTING_STAGES[index]
        if cancel_event is not None and cancel_event.is_set():
            raise Cancelled(label)
        run.transition(AttestationState.COLLECTING, index)
        reporter.emit(self.stage_percent(index), label)

    async def _run(
        self,
        run: AttestationRun,
        reporter: ProgressReporter,
        threshold_micro: int,
        rate: Decimal,
        source: EvidenceSource,
        source_url: str | None,
        credential: str | SecretStr | None,
        cancel_event: asyncio.Event | None,
    ) -> AttestationResult:
        logger.info(
            "attestation_started",
            attempt_id=run.attempt_id,
            threshold_micro=threshold_micro,
            exchange_rate=str(rate),
        )

        self._checkpoint(run, reporter, 0, cancel_event)

        self._checkpoint(run, reporter, 1, cancel_event)
        evidence = await source.fetch_evidence(source_url=source_url, credential=credential)

        self._checkpoint(run, reporter, 2, cancel_event)
        view = verify(evidence)

        self._checkpoint(run, reporter, 3, cancel_event)
        account = select_account(view)

        self._checkpoint(run, reporter, 4, cancel_event)
        balance_micro = normalize(account, rate)

        self._checkpoint(run, reporter, 5, cancel_event)
        if balance_micro < threshold_micro:
            raise InsufficientBalance(required=threshold_micro, available=balance_micro)

        self._checkpoint(run, reporter, 6, cancel_event)
        inputs = AttestationInputs(
            threshold_micro=threshold_micro,
            balance_micro=balance_micro,
            nonce=self.proof_system.generate_random_nonce(),
            blinding=self.proof_system.generate_random_nonce(),
        )

        if cancel_event is not None and cancel_event.is_set():
            raise Cancelled(PROVING_LABEL)
        run.transition(AttestationState.PROVING)

        start = self.config.proof_progress_start
        reporter.emit(start, PROVING_LABEL)

        def on_proof_progress(percent: int, label: str) -> None:
            reporter.emit(remap_progress(percent, start), label)

        try:
            output = await self.proof_system.generate_proof(inputs, on_proof_progress)
        except AttestationError:
            raise
        except Exception as e:
            logger.error(
                "proof_synthesis_failed",
                attempt_id=run.attempt_id,
                mode=self.proof_system.mode.value,
                error=str(e),
            )
            raise ProofSynthesisFailed(f"Proof synthesis failed: {e}") from e

        # Synthesis was allowed to finish; its proof is discarded
        if cancel_event is not None and cancel_event.is_set():
            raise Cancelled(PROVING_LABEL)

        if not output.is_valid or output.public_inputs != inputs.public_inputs:
            run.transition(AttestationState.FINALIZED_INVALID)
            raise ProofInvalid("Proof system produced an invalid proof")

        result = AttestationResult(
            is_valid=True,
            proof_bytes=output.proof_bytes,
            public_inputs=output.public_inputs,
            proof_mode=self.proof_system.mode,
            proving_time_ms=output.proving_time_ms,
        )

        run.transition(AttestationState.FINALIZED_VALID)
        reporter.complete("done")

        logger.info(
            "attestation_finalized",
            attempt_id=run.attempt_id,
            threshold_micro=threshold_micro,
            proof_mode=self.proof_system.mode.value,
            proving_time_ms=output.proving_time_ms,
        )

        return result
