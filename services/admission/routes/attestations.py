"""
Attestation Routes
==================

API endpoints for generating and verifying threshold attestations.
"""

import time
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, SecretStr

from services.admission.dependencies import (
    ProgressLog,
    get_pipeline,
    get_proof_system,
)
from zkvip.attestation import AttestationPipeline, SourceConfig
from zkvip.logging import get_logger
from zkvip.zk import AttestationResult, ProofSystem, PublicInputs, VerificationResult


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class AttestationRequest(BaseModel):
    """Request to attest that a balance covers a threshold."""

    threshold: Decimal = Field(..., ge=0, description="Required amount in WLD")
    access_token: SecretStr | None = Field(
        default=None, description="Bearer token for the bank data provider"
    )

    # Evidence endpoint and exchange rate come from settings only
    model_config = {
        "extra": "forbid",
        "json_schema_extra": {"examples": [{"threshold": "1", "access_token": "token"}]},
    }


class AttestationResponse(BaseModel):
    """A finalized attestation and the progress reported while producing it."""

    success: bool = True
    attestation: AttestationResult
    progress: list[dict[str, Any]]


class VerifyRequest(BaseModel):
    """Request to verify an attestation proof."""

    proof_bytes: str = Field(..., description="Hex-encoded proof")
    public_inputs: PublicInputs


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=AttestationResponse)
async def create_attestation(
    request: AttestationRequest,
    pipeline: AttestationPipeline = Depends(get_pipeline),
) -> AttestationResponse:
    """
    Attest that the best account balance covers a threshold.

    The balance itself never leaves the service; only the proof and its
    public inputs are returned.
    """
    logger.info("attestation_requested", threshold=str(request.threshold))

    progress = ProgressLog()
    try:
        result = await pipeline.run_attestation(
            request.threshold,
            SourceConfig(access_token=request.access_token),
            progress,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return AttestationResponse(attestation=result, progress=progress.events)


@router.post("/verify", response_model=VerificationResult)
async def verify_attestation(
    request: VerifyRequest,
    proof_system: ProofSystem = Depends(get_proof_system),
) -> VerificationResult:
    """Verify a proof against its public inputs."""
    start_time = time.perf_counter()

    try:
        proof_bytes = bytes.fromhex(request.proof_bytes)
    except ValueError:
        return VerificationResult(
            valid=False,
            verification_time_ms=0,
            error="proof_bytes is not valid hex",
        )

    valid = await proof_system.verify(proof_bytes, request.public_inputs)
    verification_time_ms = int((time.perf_counter() - start_time) * 1000)

    logger.info(
        "attestation_verified",
        valid=valid,
        threshold_micro=request.public_inputs.threshold_micro,
        verification_time_ms=verification_time_ms,
    )

    return VerificationResult(
        valid=valid,
        verification_time_ms=verification_time_ms,
        error=None if valid else "Proof does not verify against the public inputs",
    )
