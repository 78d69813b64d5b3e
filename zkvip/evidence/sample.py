"""
Sample Evidence
===============

Built-in bank snapshot served through an httpx mock transport, so the
pipeline can run end to end without a real bank endpoint.
"""

import json
from typing import Any

import httpx


SAMPLE_BANK_DATA: dict[str, Any] = {
    "bank": {
        "id": "nubank",
        "name": "Nubank",
        "code": "260",
    },
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


def sample_transport(payload: dict[str, Any] | None = None) -> httpx.MockTransport:
    """
    Create a transport that answers every GET with a bank snapshot.

    Args:
        payload: Snapshot to serve. Defaults to SAMPLE_BANK_DATA.
    """
    body = json.dumps(payload if payload is not None else SAMPLE_BANK_DATA).encode()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method != "GET":
            return httpx.Response(405)
        return httpx.Response(
            200,
            content=body,
            headers={"Content-Type": "application/json"},
        )

    return httpx.MockTransport(handler)
