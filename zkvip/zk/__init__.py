"""
ZK Proof Module
===============

Proof system capability for balance threshold attestations.

Usage:
    from zkvip.zk import AttestationInputs, create_proof_system

    proof_system = create_proof_system()
    nonce = proof_system.generate_random_nonce()
    output = await proof_system.generate_proof(inputs)

    is_valid = await proof_system.verify(output.proof_bytes, output.public_inputs)

Version: 0.1.0
"""

from zkvip.zk.mock import MockProofSystem
from zkvip.zk.models import (
    AttestationInputs,
    AttestationResult,
    Groth16Envelope,
    ProofOutput,
    ProofProgressCallback,
    PublicInputs,
    PublicSignals,
    VerificationResult,
    ZKProof,
)
from zkvip.zk.prover import (
    NONCE_BYTES,
    ProofSystem,
    SnarkjsProofSystem,
    create_proof_system,
)


__all__ = [
    # Proof systems
    "ProofSystem",
    "MockProofSystem",
    "SnarkjsProofSystem",
    "create_proof_system",
    "NONCE_BYTES",
    # Models
    "AttestationInputs",
    "AttestationResult",
    "PublicInputs",
    "ProofOutput",
    "ProofProgressCallback",
    "ZKProof",
    "PublicSignals",
    "Groth16Envelope",
    "VerificationResult",
]
