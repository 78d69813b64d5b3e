"""
ZK Data Models
==============

Pydantic models for attestation inputs, proofs and results.

Byte fields serialize as hex strings and accept hex strings on input.

Version: 0.1.0
"""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from zkvip.config import ProofMode


U64_MAX = 2**64 - 1

# (percent 0-100, label) reported by a proof system while proving
ProofProgressCallback = Callable[[int, str], None]


def _bytes_from_hex(value: object) -> object:
    if isinstance(value, str):
        try:
            return bytes.fromhex(value)
        except ValueError as e:
            raise ValueError(f"Expected a hex string: {e}") from e
    return value


class ZKProof(BaseModel):
    """
    A Groth16 proof.

    Compatible with snarkjs Groth16 proof format.
    """

    # Proof points (G1 and G2 elements)
    pi_a: list[str] = Field(..., description="Proof point A (G1)")
    pi_b: list[list[str]] = Field(..., description="Proof point B (G2)")
    pi_c: list[str] = Field(..., description="Proof point C (G1)")

    # Protocol info
    protocol: str = Field(default="groth16")
    curve: str = Field(default="bn128")

    def to_calldata(self) -> list[int]:
        """Convert to Solidity calldata format (8 uint256)."""
        return [
            int(self.pi_a[0]),
            int(self.pi_a[1]),
            int(self.pi_b[0][0]),
            int(self.pi_b[0][1]),
            int(self.pi_b[1][0]),
            int(self.pi_b[1][1]),
            int(self.pi_c[0]),
            int(self.pi_c[1]),
        ]


class PublicSignals(BaseModel):
    """
    Public signals of a balance threshold proof.

    Layout: [balance_commitment, threshold_micro, nonce].
    """

    signals: list[str] = Field(..., description="Public signals as decimal strings")

    @property
    def commitment(self) -> str:
        """Get the balance commitment (first signal)."""
        return self.signals[0] if self.signals else ""

    @property
    def statement(self) -> list[str]:
        """Signals that must equal the public inputs."""
        return self.signals[1:]

    def to_int_list(self) -> list[int]:
        """Convert to list of integers."""
        return [int(s) for s in self.signals]


class Groth16Envelope(BaseModel):
    """Serialized form of a snarkjs proof inside AttestationResult.proof_bytes."""

    proof: ZKProof
    public_signals: PublicSignals

    def to_bytes(self) -> bytes:
        return json.dumps(self.model_dump(), separators=(",", ":")).encode()

    @classmethod
    def from_bytes(cls, data: bytes) -> "Groth16Envelope":
        return cls.model_validate_json(data)


class PublicInputs(BaseModel):
    """Statement of an attestation: balance >= threshold_micro, tagged by nonce."""

    model_config = ConfigDict(frozen=True)

    threshold_micro: int = Field(..., ge=0, le=U64_MAX)
    nonce: bytes = Field(..., min_length=1)

    @field_validator("nonce", mode="before")
    @classmethod
    def nonce_from_hex(cls, v: object) -> object:
        return _bytes_from_hex(v)

    @field_serializer("nonce")
    def serialize_nonce(self, value: bytes) -> str:
        return value.hex()

    def to_signals(self) -> list[str]:
        """Field-element form, matching PublicSignals.statement."""
        return [str(self.threshold_micro), str(int.from_bytes(self.nonce, "big"))]


@dataclass(frozen=True)
class AttestationInputs:
    """
    Full witness for one proof.

    balance_micro and blinding are secret; they are excluded from repr and
    must never be logged or transmitted.
    """

    threshold_micro: int
    balance_micro: int = field(repr=False)
    nonce: bytes
    blinding: bytes = field(repr=False)

    @property
    def public_inputs(self) -> PublicInputs:
        return PublicInputs(threshold_micro=self.threshold_micro, nonce=self.nonce)

    def to_circuit_input(self) -> dict[str, str]:
        """Circuit input signals as decimal strings."""
        return {
            "threshold": str(self.threshold_micro),
            "nonce": str(int.from_bytes(self.nonce, "big")),
            "balance": str(self.balance_micro),
            "secret_nonce": str(int.from_bytes(self.blinding, "big")),
        }


class ProofOutput(BaseModel):
    """What a proof system returns from generate_proof."""

    is_valid: bool
    proof_bytes: bytes
    public_inputs: PublicInputs
    proving_time_ms: int = Field(..., ge=0)

    @field_validator("proof_bytes", mode="before")
    @classmethod
    def proof_from_hex(cls, v: object) -> object:
        return _bytes_from_hex(v)

    @field_serializer("proof_bytes")
    def serialize_proof(self, value: bytes) -> str:
        return value.hex()


class AttestationResult(BaseModel):
    """
    Outcome of a successful attestation.

    The only artifact exposed to the caller. proof_bytes verifies against
    public_inputs alone; the balance is never part of it.
    """

    is_valid: bool
    proof_bytes: bytes
    public_inputs: PublicInputs
    proof_mode: ProofMode
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    proving_time_ms: int = Field(default=0, ge=0)

    @field_validator("proof_bytes", mode="before")
    @classmethod
    def proof_from_hex(cls, v: object) -> object:
        return _bytes_from_hex(v)

    @field_serializer("proof_bytes")
    def serialize_proof(self, value: bytes) -> str:
        return value.hex()


class VerificationResult(BaseModel):
    """Result of proof verification."""

    valid: bool
    verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_time_ms: int = Field(..., ge=0)

    # Error info
    error: str | None = None
