"""
Admission Service Dependencies
==============================

Request-scoped access to the handles created by the application lifespan.
"""

from fastapi import Request

from zkvip.attestation import AttestationPipeline, ProgressEvent
from zkvip.groups import GroupRegistry
from zkvip.zk import ProofSystem


def get_pipeline(request: Request) -> AttestationPipeline:
    return request.app.state.pipeline


def get_registry(request: Request) -> GroupRegistry:
    return request.app.state.registry


def get_proof_system(request: Request) -> ProofSystem:
    return request.app.state.proof_system


class ProgressLog:
    """Collects progress events of one request for the response body."""

    def __init__(self) -> None:
        self.events: list[dict[str, int | str]] = []

    def __call__(self, event: ProgressEvent) -> None:
        self.events.append({"percent": event.percent, "label": event.label})
