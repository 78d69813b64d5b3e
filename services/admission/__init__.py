"""
Admission Service
=================

HTTP surface for balance-gated group admission.

This service provides:
- Group listing and creation
- Zero-knowledge threshold attestation of a bank balance
- Group joins authorized by a valid attestation
- Attestation verification against public inputs

Version: 0.1.0
"""

__version__ = "0.1.0"
