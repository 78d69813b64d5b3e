"""
Evidence Source Adapter
=======================

Fetches an attributable snapshot of account data from a bank data endpoint.

One outbound GET per call. No retries and no caching: retry policy belongs
to the caller, and a fresh attempt always fetches fresh evidence.

Version: 0.1.0
"""

import hashlib
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
from pydantic import SecretStr

from zkvip.config import EvidenceMode, EvidenceSettings, get_settings
from zkvip.errors import MalformedEvidence, SourceRejected, SourceUnreachable
from zkvip.evidence.sample import sample_transport
from zkvip.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class Evidence:
    """Raw snapshot of externally sourced account data."""

    source_url: str
    raw_payload: bytes = field(repr=False)
    retrieved_at: datetime
    status_code: int = 200

    @property
    def content_hash(self) -> str:
        """SHA-256 of the raw payload."""
        return hashlib.sha256(self.raw_payload).hexdigest()


class HttpEvidenceSource:
    """
    Evidence source backed by an HTTP JSON endpoint.

    The source owns its HTTP client; open it with ``async with`` and it is
    closed when the block exits.

    Example:
        >>> async with HttpEvidenceSource() as source:
        ...     evidence = await source.fetch_evidence(credential="token")
    """

    def __init__(
        self,
        config: EvidenceSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the source.

        Args:
            config: Evidence source configuration
            transport: Optional httpx transport (mock transports in tests)
        """
        self.config = config or get_settings().evidence
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HttpEvidenceSource":
        await self.open()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the HTTP client."""
        if self._client is not None:
            return

        timeout = httpx.Timeout(
            connect=self.config.connect_timeout,
            read=self.config.read_timeout,
            write=10.0,
            pool=10.0,
        )
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={
                "User-Agent": self.config.user_agent,
                "Accept": "application/json",
            },
            # A redirect would be a second request
            follow_redirects=False,
            http2=self._transport is None,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_evidence(
        self,
        source_url: str | None = None,
        credential: str | SecretStr | None = None,
    ) -> Evidence:
        """
        Fetch a snapshot of account data.

        Args:
            source_url: Endpoint to query. Defaults to the configured URL.
            credential: Bearer token. Defaults to the configured access token.

        Returns:
            Evidence with a non-empty payload

        Raises:
            SourceUnreachable: Request failure, invalid URL or server error
            SourceRejected: Authentication/authorization or other client error
            MalformedEvidence: Empty or undecodable response body
        """
        if self._client is None:
            raise RuntimeError("Evidence source is not open; use 'async with'")

        url = source_url or self.config.source_url

        if credential is None:
            credential = self.config.access_token
        if isinstance(credential, SecretStr):
            credential = credential.get_secret_value()

        headers: dict[str, str] = {}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"

        try:
            response = await self._client.get(url, headers=headers)
        except httpx.DecodingError as e:
            logger.warning("evidence_source_undecodable", source_url=url, error=str(e))
            raise MalformedEvidence(f"Could not decode the response from {url}: {e}") from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.warning(
                "evidence_source_unreachable",
                source_url=url,
                error=str(e),
            )
            raise SourceUnreachable(f"Could not reach {url}: {e}") from e

        status_code = response.status_code
        if status_code in (401, 403):
            logger.warning("evidence_source_unauthorized", source_url=url, status=status_code)
            raise SourceRejected(
                f"Evidence source refused credentials (HTTP {status_code})",
                status_code=status_code,
            )
        if status_code >= 500:
            logger.warning("evidence_source_server_error", source_url=url, status=status_code)
            raise SourceUnreachable(f"Evidence source failed (HTTP {status_code})")
        if not response.is_success:
            logger.warning("evidence_source_rejected", source_url=url, status=status_code)
            raise SourceRejected(
                f"Evidence source rejected the request (HTTP {status_code})",
                status_code=status_code,
            )

        body = response.content
        if not body.strip():
            raise MalformedEvidence(f"Evidence source returned an empty body for {url}")

        evidence = Evidence(
            source_url=url,
            raw_payload=body,
            retrieved_at=datetime.now(UTC),
            status_code=status_code,
        )

        logger.info(
            "evidence_fetched",
            source_url=url,
            status=status_code,
            size=len(body),
            content_hash=evidence.content_hash,
        )

        return evidence


def create_evidence_source(config: EvidenceSettings | None = None) -> HttpEvidenceSource:
    """
    Create an evidence source for the configured mode.

    Sample mode serves the built-in bank snapshot through a mock transport.
    """
    config = config or get_settings().evidence
    transport = sample_transport() if config.mode == EvidenceMode.SAMPLE else None
    return HttpEvidenceSource(config, transport=transport)
