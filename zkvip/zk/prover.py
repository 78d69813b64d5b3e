"""
Proof System Capability
=======================

Interface to the zero-knowledge proof system that proves a committed balance
is at least a public threshold, plus the snarkjs (Groth16) backend.

Proof systems hold no per-proof state, so one instance can serve many
concurrent attestations without locking.

Version: 0.1.0
"""

import asyncio
import json
import secrets
import subprocess
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from zkvip.config import ProofMode, ProofSettings, get_settings
from zkvip.logging import get_logger
from zkvip.zk.models import (
    AttestationInputs,
    Groth16Envelope,
    ProofOutput,
    ProofProgressCallback,
    PublicInputs,
    PublicSignals,
    ZKProof,
)


logger = get_logger(__name__)

# 31 bytes keeps the value below the BN254 scalar field order
NONCE_BYTES = 31


def report_progress(
    on_progress: ProofProgressCallback | None,
    percent: int,
    label: str,
) -> None:
    """Invoke an optional proof progress callback."""
    if on_progress is not None:
        on_progress(percent, label)


class ProofSystem(ABC):
    """
    Abstract base class for proof system backends.

    Implements the Strategy pattern for different proving backends.
    """

    @property
    @abstractmethod
    def mode(self) -> ProofMode:
        """Get the proof system mode."""
        ...

    def generate_random_nonce(self) -> bytes:
        """Generate a fresh random nonce as field-element bytes."""
        return secrets.token_bytes(NONCE_BYTES)

    @abstractmethod
    async def generate_proof(
        self,
        inputs: AttestationInputs,
        on_progress: ProofProgressCallback | None = None,
    ) -> ProofOutput:
        """
        Prove balance_micro >= threshold_micro.

        Args:
            inputs: Full witness (public and secret inputs)
            on_progress: Optional (percent, label) callback

        Returns:
            ProofOutput with is_valid set by the proof system
        """
        ...

    @abstractmethod
    async def verify(self, proof_bytes: bytes, public_inputs: PublicInputs) -> bool:
        """
        Verify a proof against its public inputs alone.

        Returns:
            True if the proof is valid for these public inputs
        """
        ...

    async def health_check(self) -> dict[str, Any]:
        """Check proof system health."""
        return {"status": "healthy", "mode": self.mode.value}


class SnarkjsProofSystem(ProofSystem):
    """
    Groth16 backend that shells out to snarkjs.

    Expects a compiled ``balance_threshold`` circuit under the build
    directory, whose public signals are [commitment, threshold, nonce].

    Usage:
        proof_system = SnarkjsProofSystem()
        output = await proof_system.generate_proof(inputs)
    """

    def __init__(
        self,
        build_dir: str | Path | None = None,
        circuit_name: str = "balance_threshold",
    ) -> None:
        """
        Initialize the backend.

        Args:
            build_dir: Path to circuit build directory.
                      Defaults to circuits/build/
            circuit_name: Name of the compiled circuit
        """
        self.build_dir = Path(build_dir) if build_dir else get_settings().proof.build_dir
        self.circuit_name = circuit_name
        self._validate_setup()

    @property
    def mode(self) -> ProofMode:
        return ProofMode.SNARKJS

    @property
    def circuit_dir(self) -> Path:
        return self.build_dir / self.circuit_name

    def _validate_setup(self) -> None:
        """Validate that required circuit files exist."""
        if not self.build_dir.exists():
            logger.warning(
                "zk_circuit_build_dir_not_found",
                path=str(self.build_dir),
            )

    async def _run_snarkjs(self, *args: str) -> subprocess.CompletedProcess[str]:
        return await asyncio.to_thread(
            subprocess.run,
            ["npx", "snarkjs", *args],
            capture_output=True,
            text=True,
            cwd=self.build_dir.parent,
        )

    async def generate_proof(
        self,
        inputs: AttestationInputs,
        on_progress: ProofProgressCallback | None = None,
    ) -> ProofOutput:
        """Run ``snarkjs groth16 fullprove`` for the balance threshold circuit."""
        wasm_path = self.circuit_dir / f"{self.circuit_name}_js" / f"{self.circuit_name}.wasm"
        zkey_path = self.circuit_dir / "proving_key.zkey"

        if not wasm_path.exists():
            raise FileNotFoundError(f"Circuit WASM not found: {wasm_path}")
        if not zkey_path.exists():
            raise FileNotFoundError(f"Proving key not found: {zkey_path}")

        report_progress(on_progress, 0, "writing witness input")

        # Per-call temp dir so concurrent proofs never share files
        with tempfile.TemporaryDirectory(prefix="zkvip-proof-") as tmp:
            tmp_dir = Path(tmp)
            input_file = tmp_dir / "input.json"
            proof_file = tmp_dir / "proof.json"
            public_file = tmp_dir / "public.json"

            input_file.write_text(json.dumps(inputs.to_circuit_input()))

            report_progress(on_progress, 10, "running groth16 fullprove")
            start_time = time.time()

            result = await self._run_snarkjs(
                "groth16",
                "fullprove",
                str(input_file),
                str(wasm_path),
                str(zkey_path),
                str(proof_file),
                str(public_file),
            )

            proving_time_ms = int((time.time() - start_time) * 1000)

            if result.returncode != 0:
                logger.error(
                    "snarkjs_proof_generation_failed",
                    stderr=result.stderr,
                    circuit=self.circuit_name,
                )
                raise RuntimeError(f"Proof generation failed: {result.stderr}")

            report_progress(on_progress, 90, "reading proof")
            proof_json = json.loads(proof_file.read_text())
            public_signals = json.loads(public_file.read_text())

        envelope = Groth16Envelope(
            proof=ZKProof(**proof_json),
            public_signals=PublicSignals(signals=public_signals),
        )
        public_inputs = inputs.public_inputs
        is_valid = envelope.public_signals.statement == public_inputs.to_signals()

        logger.info(
            "zk_proof_generated",
            circuit=self.circuit_name,
            proving_time_ms=proving_time_ms,
            valid=is_valid,
        )
        report_progress(on_progress, 100, "proof ready")

        return ProofOutput(
            is_valid=is_valid,
            proof_bytes=envelope.to_bytes(),
            public_inputs=public_inputs,
            proving_time_ms=proving_time_ms,
        )

    async def verify(self, proof_bytes: bytes, public_inputs: PublicInputs) -> bool:
        """Run ``snarkjs groth16 verify`` against the circuit verification key."""
        vkey_path = self.circuit_dir / "verification_key.json"
        if not vkey_path.exists():
            logger.warning("zk_verification_key_not_found", path=str(vkey_path))
            return False

        try:
            envelope = Groth16Envelope.from_bytes(proof_bytes)
        except ValueError as e:
            logger.warning("zk_proof_unparseable", error=str(e))
            return False

        # The proof must be about exactly these public inputs
        if envelope.public_signals.statement != public_inputs.to_signals():
            return False

        with tempfile.TemporaryDirectory(prefix="zkvip-verify-") as tmp:
            proof_file = Path(tmp) / "proof.json"
            public_file = Path(tmp) / "public.json"
            proof_file.write_text(json.dumps(envelope.proof.model_dump()))
            public_file.write_text(json.dumps(envelope.public_signals.signals))

            start_time = time.time()
            result = await self._run_snarkjs(
                "groth16",
                "verify",
                str(vkey_path),
                str(public_file),
                str(proof_file),
            )
            verification_time_ms = int((time.time() - start_time) * 1000)

        is_valid = result.returncode == 0 and "OK" in result.stdout

        logger.info(
            "zk_proof_verified",
            circuit=self.circuit_name,
            valid=is_valid,
            verification_time_ms=verification_time_ms,
        )

        return is_valid

    async def health_check(self) -> dict[str, Any]:
        """Report whether the compiled circuit is present."""
        ready = (self.circuit_dir / "proving_key.zkey").exists()
        return {
            "status": "healthy" if ready else "degraded",
            "mode": self.mode.value,
            "circuit": self.circuit_name,
            "build_dir": str(self.build_dir),
        }


def create_proof_system(config: ProofSettings | None = None) -> ProofSystem:
    """
    Create a proof system for the configured mode.

    Each call returns a new instance owned by the caller.

    Args:
        config: Proof settings. Defaults to application settings.
    """
    config = config or get_settings().proof

    if config.mode == ProofMode.MOCK:
        from zkvip.zk.mock import MockProofSystem

        proof_system: ProofSystem = MockProofSystem()
    elif config.mode == ProofMode.SNARKJS:
        proof_system = SnarkjsProofSystem(config.build_dir, config.circuit_name)
    else:
        raise ValueError(f"Unknown proof mode: {config.mode}")

    logger.info("proof_system_initialized", mode=config.mode.value)
    return proof_system
