"""
Evidence Module
===============

Acquisition, verification and balance extraction for bank account evidence.

Usage:
    from zkvip.evidence import HttpEvidenceSource, verify, select_account, normalize

    async with HttpEvidenceSource() as source:
        evidence = await source.fetch_evidence(credential=token)

    view = verify(evidence)
    account = select_account(view)
    balance_micro = normalize(account, exchange_rate="0.18")
"""

from zkvip.evidence.extractor import (
    MICRO_UNITS,
    U64_MAX,
    AccountKind,
    AccountRecord,
    NormalizedAmount,
    as_decimal,
    extract_accounts,
    normalize,
    select_account,
    to_micro_units,
)
from zkvip.evidence.sample import SAMPLE_BANK_DATA, sample_transport
from zkvip.evidence.source import Evidence, HttpEvidenceSource, create_evidence_source
from zkvip.evidence.verifier import VerifiedView, verify


__all__ = [
    # Source
    "Evidence",
    "HttpEvidenceSource",
    "create_evidence_source",
    "SAMPLE_BANK_DATA",
    "sample_transport",
    # Verifier
    "VerifiedView",
    "verify",
    # Extraction
    "AccountKind",
    "AccountRecord",
    "NormalizedAmount",
    "MICRO_UNITS",
    "U64_MAX",
    "as_decimal",
    "extract_accounts",
    "select_account",
    "normalize",
    "to_micro_units",
]
