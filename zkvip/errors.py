"""
Attestation Errors
==================

Unified error taxonomy for the threshold attestation pipeline.

Every component raises its own kind; the orchestrator passes them through
unchanged. All kinds are terminal for the current attempt.

Version: 0.1.0
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Kinds of attestation failure."""

    SOURCE_UNREACHABLE = "source_unreachable"
    SOURCE_REJECTED = "source_rejected"
    MALFORMED_EVIDENCE = "malformed_evidence"
    PATH_NOT_FOUND = "path_not_found"
    NO_ACCOUNTS_FOUND = "no_accounts_found"
    NEGATIVE_BALANCE = "negative_balance"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    PROOF_SYNTHESIS_FAILED = "proof_synthesis_failed"
    PROOF_INVALID = "proof_invalid"
    CANCELLED = "cancelled"


class AttestationError(Exception):
    """Base class for attestation pipeline failures."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def user_message(self) -> str:
        """Human-readable message safe to show to the end user."""
        return self.message


class SourceUnreachable(AttestationError):
    """The evidence source could not be reached."""

    kind = ErrorKind.SOURCE_UNREACHABLE

    @property
    def user_message(self) -> str:
        return "The bank data provider could not be reached. Try again later."


class SourceRejected(AttestationError):
    """The evidence source refused the request."""

    kind = ErrorKind.SOURCE_REJECTED

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def user_message(self) -> str:
        return "The bank data provider rejected the request. Check your access."


class MalformedEvidence(AttestationError):
    """Evidence payload is not well-formed structured data."""

    kind = ErrorKind.MALFORMED_EVIDENCE


class PathNotFound(AttestationError):
    """A field path is absent from the verified evidence."""

    kind = ErrorKind.PATH_NOT_FOUND

    def __init__(self, path: str, segment: str) -> None:
        super().__init__(f"Path {path!r} not found (missing segment {segment!r})")
        self.path = path
        self.segment = segment


class NoAccountsFound(AttestationError):
    """Evidence contains zero account records."""

    kind = ErrorKind.NO_ACCOUNTS_FOUND

    def __init__(self, message: str = "No accounts found in evidence") -> None:
        super().__init__(message)


class NegativeBalance(AttestationError):
    """Selected account has a negative balance."""

    kind = ErrorKind.NEGATIVE_BALANCE

    def __init__(self, account_id: str) -> None:
        super().__init__(f"Account {account_id!r} has a negative balance")
        self.account_id = account_id


class InsufficientBalance(AttestationError):
    """Normalized balance is below the required threshold (micro-units)."""

    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            f"Insufficient balance: required {required}, available {available} micro-units"
        )
        self.required = required
        self.available = available

    @property
    def shortfall(self) -> int:
        """Micro-units missing to reach the threshold."""
        return max(self.required - self.available, 0)

    @property
    def user_message(self) -> str:
        return (
            f"Balance is {self.shortfall / 1_000_000:.6f} short of the required "
            f"{self.required / 1_000_000:.6f}."
        )


class ProofSynthesisFailed(AttestationError):
    """The proof system failed to produce a proof."""

    kind = ErrorKind.PROOF_SYNTHESIS_FAILED


class ProofInvalid(AttestationError):
    """The proof system produced a proof that is not valid."""

    kind = ErrorKind.PROOF_INVALID


class Cancelled(AttestationError):
    """The caller cancelled the attempt."""

    kind = ErrorKind.CANCELLED

    def __init__(self, stage: str) -> None:
        super().__init__(f"Attestation cancelled during {stage}")
        self.stage = stage
