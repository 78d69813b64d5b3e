"""
Logging Module
==============

Structured logging using structlog with JSON output for production
and colored console output for development.

Usage:
    from zkvip.logging import get_logger, setup_logging

    # Setup at application start
    setup_logging()

    # Get logger for a module
    logger = get_logger(__name__)

    # Log with context
    logger.info("evidence_fetched", source_url=url, status=200)
    logger.error("proof_synthesis_failed", error=str(e))
"""

from zkvip.logging.logger import (
    bind_context,
    censor_secrets,
    clear_context,
    get_logger,
    setup_logging,
    unbind_context,
)


__all__ = [
    "get_logger",
    "setup_logging",
    "bind_context",
    "unbind_context",
    "clear_context",
    "censor_secrets",
]
