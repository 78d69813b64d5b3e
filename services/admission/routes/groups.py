"""
Group Routes
============

API endpoints for balance-gated groups.
"""

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, SecretStr

from services.admission.dependencies import ProgressLog, get_pipeline, get_registry
from zkvip.attestation import AttestationPipeline, SourceConfig
from zkvip.groups import (
    AdmissionDenied,
    Group,
    GroupExistsError,
    GroupNotFoundError,
    GroupRegistry,
    Membership,
)
from zkvip.logging import get_logger
from zkvip.models import BaseResponse
from zkvip.zk import AttestationResult


logger = get_logger(__name__)
router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class CreateGroupRequest(BaseModel):
    """Request to create a group."""

    name: str = Field(..., min_length=1, max_length=120)
    description: str = Field(default="", max_length=1000)
    min_wld: Decimal = Field(..., ge=0, description="Minimum balance in WLD")


class JoinRequest(BaseModel):
    """Request to join a group by attesting a balance."""

    member_id: str = Field(..., min_length=1, description="Member identifier")
    access_token: SecretStr | None = None

    # Evidence endpoint and exchange rate come from settings only
    model_config = {"extra": "forbid"}


class JoinResponse(BaseModel):
    """Outcome of a group join."""

    success: bool = True
    already_member: bool = False
    membership: Membership
    attestation: AttestationResult | None = None
    progress: list[dict[str, Any]] = Field(default_factory=list)


def _group_or_404(registry: GroupRegistry, group_id: str) -> Group:
    try:
        return registry.get_group(group_id)
    except GroupNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


# ============================================================================
# Group Endpoints
# ============================================================================


@router.get("", response_model=BaseResponse[list[Group]])
async def list_groups(
    registry: GroupRegistry = Depends(get_registry),
) -> BaseResponse[list[Group]]:
    """List available groups."""
    return BaseResponse(data=registry.list_groups())


@router.post("", response_model=BaseResponse[Group], status_code=status.HTTP_201_CREATED)
async def create_group(
    request: CreateGroupRequest,
    registry: GroupRegistry = Depends(get_registry),
) -> BaseResponse[Group]:
    """Create a group; its id is derived from the name."""
    try:
        group = registry.create_group(request.name, request.description, request.min_wld)
    except GroupExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    return BaseResponse(data=group, message="Group created")


@router.get("/{group_id}", response_model=BaseResponse[Group])
async def get_group(
    group_id: str,
    registry: GroupRegistry = Depends(get_registry),
) -> BaseResponse[Group]:
    """Get a group by id."""
    return BaseResponse(data=_group_or_404(registry, group_id))


# ============================================================================
# Join Endpoint
# ============================================================================


@router.post("/{group_id}/join", response_model=JoinResponse)
async def join_group(
    group_id: str,
    request: JoinRequest,
    registry: GroupRegistry = Depends(get_registry),
    pipeline: AttestationPipeline = Depends(get_pipeline),
) -> JoinResponse:
    """
    Join a group by proving the best account balance covers its minimum.

    Attestation failures are returned as error responses keyed by their
    kind (see the application exception handlers).
    """
    group = _group_or_404(registry, group_id)

    existing = [m for m in registry.memberships(request.member_id) if m.group_id == group.id]
    if existing:
        return JoinResponse(already_member=True, membership=existing[0])

    logger.info("group_join_requested", group_id=group.id, member_id=request.member_id)

    progress = ProgressLog()
    result = await pipeline.run_attestation(
        group.min_wld,
        SourceConfig(access_token=request.access_token),
        progress,
    )

    try:
        membership = await registry.admit(group.id, request.member_id, result)
    except AdmissionDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e

    return JoinResponse(membership=membership, attestation=result, progress=progress.events)
