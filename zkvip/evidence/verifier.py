"""
Evidence Verifier
=================

Validates that evidence is well-formed structured data and exposes a
read-only, path-based query surface over it.

Paths are dot-separated field names. Array elements are addressed with
numeric segments ("accounts.0.balance"). Every missing segment raises
PathNotFound; nothing is ever defaulted.

Version: 0.1.0
"""

import copy
import json
from decimal import Decimal
from typing import Any

from zkvip.errors import MalformedEvidence, PathNotFound
from zkvip.evidence.source import Evidence
from zkvip.logging import get_logger


logger = get_logger(__name__)


class VerifiedView:
    """Parsed evidence payload with typed accessors."""

    __slots__ = ("_source_url", "_payload")

    def __init__(self, source_url: str, payload: dict[str, Any]) -> None:
        if not isinstance(payload, dict):
            raise MalformedEvidence("Evidence payload must be a JSON object")
        self._source_url = source_url
        self._payload = payload

    def __repr__(self) -> str:
        return f"VerifiedView(source_url={self._source_url!r})"

    @property
    def source_url(self) -> str:
        return self._source_url

    @property
    def payload(self) -> dict[str, Any]:
        """A copy of the parsed payload."""
        return copy.deepcopy(self._payload)

    def _resolve(self, path: str) -> Any:
        if not path:
            raise PathNotFound(path, "")

        value: Any = self._payload
        for segment in path.split("."):
            if isinstance(value, dict):
                if segment not in value:
                    raise PathNotFound(path, segment)
                value = value[segment]
            elif isinstance(value, list):
                if not segment.isdigit() or int(segment) >= len(value):
                    raise PathNotFound(path, segment)
                value = value[int(segment)]
            else:
                raise PathNotFound(path, segment)
        return value

    def contains(self, path: str) -> bool:
        """Check whether a path resolves."""
        try:
            self._resolve(path)
        except PathNotFound:
            return False
        return True

    def get(self, path: str) -> Any:
        """Get the raw value at a path (containers are copied)."""
        value = self._resolve(path)
        if isinstance(value, (dict, list)):
            return copy.deepcopy(value)
        return value

    def get_string(self, path: str) -> str:
        """
        Get a scalar value at a path as a string.

        Raises:
            PathNotFound: A segment is missing
            MalformedEvidence: The value is an object, array or null
        """
        value = self._resolve(path)
        if value is None or isinstance(value, (dict, list)):
            raise MalformedEvidence(f"Expected a string at {path!r}")
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def get_number(self, path: str) -> Decimal:
        """
        Get a numeric value at a path.

        Raises:
            PathNotFound: A segment is missing
            MalformedEvidence: The value is not a number
        """
        value = self._resolve(path)
        if isinstance(value, bool) or not isinstance(value, (int, Decimal)):
            raise MalformedEvidence(f"Expected a number at {path!r}")
        if isinstance(value, Decimal) and not value.is_finite():
            raise MalformedEvidence(f"Expected a finite number at {path!r}")
        return Decimal(value)

    def get_list(self, path: str) -> list[Any]:
        """
        Get an array at a path.

        Raises:
            PathNotFound: A segment is missing
            MalformedEvidence: The value is not an array
        """
        value = self._resolve(path)
        if not isinstance(value, list):
            raise MalformedEvidence(f"Expected an array at {path!r}")
        return copy.deepcopy(value)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant {name}")


def verify(evidence: Evidence) -> VerifiedView:
    """
    Verify evidence and build a view over its JSON content.

    Numbers with a fractional part are parsed as Decimal so no precision is
    lost before normalization.

    Raises:
        MalformedEvidence: Payload is not UTF-8 JSON with an object at the top
    """
    try:
        payload = json.loads(
            evidence.raw_payload.decode("utf-8"),
            parse_float=Decimal,
            parse_constant=_reject_constant,
        )
    except (UnicodeDecodeError, ValueError) as e:
        logger.warning(
            "evidence_malformed",
            source_url=evidence.source_url,
            error=str(e),
        )
        raise MalformedEvidence(f"Evidence payload is not valid JSON: {e}") from e

    if not isinstance(payload, dict):
        raise MalformedEvidence("Evidence payload must be a JSON object")

    logger.debug(
        "evidence_verified",
        source_url=evidence.source_url,
        content_hash=evidence.content_hash,
    )

    return VerifiedView(evidence.source_url, payload)
