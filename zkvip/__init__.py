"""
ZK VIP
======

Zero-knowledge threshold attestation of a bank balance for group admission.

A member proves that their best account balance, converted to the target
currency, covers a group's minimum without revealing the balance.

Packages:
- evidence: Fetch, verify and extract bank account evidence
- zk: Proof systems (mock and snarkjs Groth16)
- attestation: Engine, progress reporting and the pipeline entry point
- groups: Balance-gated groups and admission
"""

from zkvip.config import get_settings, settings
from zkvip.logging import get_logger, setup_logging


__version__ = "0.1.0"

__all__ = ["settings", "get_settings", "get_logger", "setup_logging", "__version__"]
