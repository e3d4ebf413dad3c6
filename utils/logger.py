"""
Logger factory and utility functions.

Provides:
- get_logger(): Get a configured logger instance
- hash_ip(): Hash IP addresses for privacy
"""

from typing import Optional

import structlog
from structlog.stdlib import BoundLogger

from . import logging_config


def get_logger(name: str) -> BoundLogger:
    """
    Get a configured logger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("otp_challenge_issued", document_id="doc_1")
    """
    return structlog.get_logger(name)


def hash_ip(ip_address: Optional[str]) -> Optional[str]:
    """
    Hash IP address for privacy in production.

    Convenience wrapper around logging_config.hash_ip() that handles None.
    """
    if ip_address is None:
        return None
    return logging_config.hash_ip(ip_address)
