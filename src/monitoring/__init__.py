"""
Logging infrastructure for RightsLedger.

This package provides:
- Structured logging with JSON or console output
- Redaction of payee personal data in log output
- Request logging middleware for the HTTP API

Usage:
    from monitoring import get_logger, LoggingContext

    logger = get_logger(__name__)
    with LoggingContext(contract_id="contract_ab12"):
        logger.info("Split revalidated", extra={"controlled_total": "60"})
"""

from monitoring.logging import LoggingContext, configure_logging, get_logger
from monitoring.middleware import setup_request_logging

__all__ = [
    "LoggingContext",
    "configure_logging",
    "get_logger",
    "setup_request_logging",
]
