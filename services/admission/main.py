"""
Admission Service - Main Application
====================================

FastAPI application for balance-gated group admission with zero-knowledge
threshold attestations.

Version: 0.1.0
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.admission.routes import attestations, groups
from zkvip.attestation import AttestationPipeline
from zkvip.config import settings
from zkvip.errors import AttestationError, ErrorKind, InsufficientBalance
from zkvip.groups import GroupRegistry
from zkvip.logging import get_logger, setup_logging
from zkvip.models import ErrorResponse, HealthResponse
from zkvip.zk import create_proof_system


# Setup logging
setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.is_production,
    service_name="admission",
)

logger = get_logger(__name__)


# HTTP status per attestation failure kind
ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.SOURCE_UNREACHABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.SOURCE_REJECTED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.MALFORMED_EVIDENCE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.PATH_NOT_FOUND: 422,
    ErrorKind.NO_ACCOUNTS_FOUND: 422,
    ErrorKind.NEGATIVE_BALANCE: 422,
    ErrorKind.INSUFFICIENT_BALANCE: status.HTTP_403_FORBIDDEN,
    ErrorKind.PROOF_SYNTHESIS_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.PROOF_INVALID: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.CANCELLED: status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Application lifespan manager."""
    logger.info(
        "admission_service_starting",
        environment=settings.environment.value,
        port=settings.ports.admission,
    )

    # Startup
    try:
        proof_system = create_proof_system(settings.proof)
        app.state.proof_system = proof_system
        app.state.pipeline = AttestationPipeline(proof_system)
        app.state.registry = GroupRegistry(proof_system)
        logger.info(
            "proof_system_ready",
            mode=settings.proof.mode.value,
            evidence_mode=settings.evidence.mode.value,
        )
    except Exception as e:
        logger.error("startup_failed", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("admission_service_shutting_down")


# Create FastAPI application
app = FastAPI(
    title="ZK VIP Admission Service",
    description="Zero-knowledge balance attestations for group admission",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origins_list,
    allow_credentials=settings.cors.allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check(request: Request) -> HealthResponse:
    """
    Service health check.

    Returns health status of the service and its proof system.
    """
    components: dict[str, dict[str, Any]] = {}

    proof_system = getattr(request.app.state, "proof_system", None)
    if proof_system is None:
        components["proof_system"] = {"status": "unavailable"}
    else:
        components["proof_system"] = await proof_system.health_check()

    all_healthy = all(c.get("status") == "healthy" for c in components.values())

    return HealthResponse(
        status="healthy" if all_healthy else "degraded",
        service="admission",
        version="0.1.0",
        components=components,
    )


@app.get("/", tags=["Health"])
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": "ZK VIP Admission Service",
        "version": "0.1.0",
        "docs": "/docs",
    }


# ============================================================================
# Include Routers
# ============================================================================

app.include_router(
    groups.router,
    prefix="/api/v1/groups",
    tags=["Groups"],
)

app.include_router(
    attestations.router,
    prefix="/api/v1/attestations",
    tags=["Attestations"],
)


# ============================================================================
# Error Handlers
# ============================================================================


@app.exception_handler(AttestationError)
async def attestation_exception_handler(request: Request, exc: AttestationError) -> JSONResponse:
    """Map attestation failures to HTTP errors."""
    status_code = ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)

    details: dict[str, Any] | None = None
    if isinstance(exc, InsufficientBalance):
        details = {"required_micro": exc.required, "shortfall_micro": exc.shortfall}

    logger.warning(
        "attestation_failed",
        kind=exc.kind.value,
        status_code=status_code,
        path=request.url.path,
    )
    body = ErrorResponse(error=exc.user_message, error_code=exc.kind.value, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error": exc.detail,
            "status_code": exc.status_code,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "status_code": 500,
        },
    )


# ============================================================================
# Run with Uvicorn
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.admission.main:app",
        host="0.0.0.0",
        port=settings.ports.admission,
        reload=settings.debug,
        log_level=settings.log_level.value.lower(),
    )
