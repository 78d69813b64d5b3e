"""
Configuration Module
====================

Centralized configuration management using Pydantic Settings.
Loads from environment variables with type validation and defaults.

Usage:
    from zkvip.config import settings

    print(settings.environment)
    print(settings.attestation.default_exchange_rate)
"""

from zkvip.config.settings import (
    AttestationSettings,
    Environment,
    EvidenceMode,
    EvidenceSettings,
    LogLevel,
    ProofMode,
    ProofSettings,
    Settings,
    get_settings,
)


# Global settings instance (singleton)
settings = get_settings()

__all__ = [
    "Settings",
    "get_settings",
    "settings",
    "Environment",
    "LogLevel",
    "EvidenceMode",
    "EvidenceSettings",
    "ProofMode",
    "ProofSettings",
    "AttestationSettings",
]
