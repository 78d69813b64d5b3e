"""
Test Configuration
==================

Pytest fixtures for ZK VIP tests.
"""

import json
import os
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["EVIDENCE_MODE"] = "sample"
os.environ["PROOF_MODE"] = "mock"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


@pytest.fixture
def bank_data() -> dict[str, Any]:
    """Bank snapshot with a checking and a savings account (BRL)."""
    return {
        "bank": {"id": "nubank", "name": "Nubank", "code": "260"},
        "accounts": [
            {
                "id": "acc-001",
                "name": "Conta Corrente",
                "type": "checking",
                "balance": 5000.75,
                "currency": "BRL",
            },
            {
                "id": "acc-002",
                "name": "NuConta",
                "type": "savings",
                "balance": 12500.50,
                "currency": "BRL",
            },
        ],
    }


@pytest.fixture
def json_transport() -> Callable[..., httpx.MockTransport]:
    """
    Factory for transports serving a fixed JSON payload.

    The returned transport records every request in ``transport.requests``.
    """

    def factory(payload: Any, status_code: int = 200) -> httpx.MockTransport:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(status_code, content=json.dumps(payload).encode())

        transport = httpx.MockTransport(handler)
        transport.requests = requests  # type: ignore[attr-defined]
        return transport

    return factory


@pytest.fixture
def mock_proof_system():
    """Hash-commitment proof system."""
    from zkvip.zk import MockProofSystem

    return MockProofSystem()


@pytest_asyncio.fixture
async def admission_client() -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Admission Service with its lifespan running."""
    from services.admission.main import app, lifespan

    async with lifespan(app):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as client:
            yield client
