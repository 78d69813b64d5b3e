"""
Mock Proof System
=================

In-process proof system for development and testing.

The "proof" is a salted SHA-256 commitment to the balance plus a binding
digest over (commitment, threshold, nonce, outcome). It verifies against the
public inputs alone and hides the balance behind the random blinding value.
It is not succinct or sound against a malicious prover; use the snarkjs
backend for real attestations.

Version: 0.1.0
"""

import asyncio
import hashlib
import hmac
import time

from pydantic import BaseModel, ValidationError

from zkvip.config import ProofMode
from zkvip.logging import get_logger
from zkvip.zk.models import AttestationInputs, ProofOutput, ProofProgressCallback, PublicInputs
from zkvip.zk.prover import ProofSystem, report_progress


logger = get_logger(__name__)

DOMAIN = b"zkvip.mock.balance_threshold.v1"


class MockProof(BaseModel):
    """Wire form of a mock proof."""

    commitment: str
    binding: str


class MockProofSystem(ProofSystem):
    """
    Hash-commitment mock of the balance threshold circuit.

    Holds no state; safe to share across concurrent attestations.
    """

    @property
    def mode(self) -> ProofMode:
        return ProofMode.MOCK

    @staticmethod
    def _commit(balance_micro: int, blinding: bytes) -> bytes:
        return hashlib.sha256(
            DOMAIN + b"|commit|" + balance_micro.to_bytes(8, "big") + blinding
        ).digest()

    @staticmethod
    def _bind(commitment: bytes, public_inputs: PublicInputs, satisfied: bool) -> bytes:
        return hashlib.sha256(
            DOMAIN
            + b"|bind|"
            + commitment
            + public_inputs.threshold_micro.to_bytes(8, "big")
            + public_inputs.nonce
            + (b"\x01" if satisfied else b"\x00")
        ).digest()

    async def generate_proof(
        self,
        inputs: AttestationInputs,
        on_progress: ProofProgressCallback | None = None,
    ) -> ProofOutput:
        """Commit to the balance and bind the commitment to the statement."""
        start_time = time.perf_counter()

        report_progress(on_progress, 0, "committing balance")
        commitment = self._commit(inputs.balance_micro, inputs.blinding)
        await asyncio.sleep(0)

        report_progress(on_progress, 40, "building witness")
        satisfied = inputs.balance_micro >= inputs.threshold_micro
        public_inputs = inputs.public_inputs
        await asyncio.sleep(0)

        report_progress(on_progress, 80, "binding statement")
        binding = self._bind(commitment, public_inputs, satisfied)
        proof = MockProof(commitment=commitment.hex(), binding=binding.hex())

        proving_time_ms = int((time.perf_counter() - start_time) * 1000)
        report_progress(on_progress, 100, "proof ready")

        logger.debug("mock_proof_generated", valid=satisfied, proving_time_ms=proving_time_ms)

        return ProofOutput(
            is_valid=satisfied,
            proof_bytes=proof.model_dump_json().encode(),
            public_inputs=public_inputs,
            proving_time_ms=proving_time_ms,
        )

    async def verify(self, proof_bytes: bytes, public_inputs: PublicInputs) -> bool:
        """Recompute the binding from the public inputs and the commitment."""
        try:
            proof = MockProof.model_validate_json(proof_bytes)
            commitment = bytes.fromhex(proof.commitment)
        except (ValidationError, ValueError):
            return False

        expected = self._bind(commitment, public_inputs, satisfied=True)
        return hmac.compare_digest(expected.hex(), proof.binding)
