"""
Logging utilities — framework-agnostic re-exports.

Application code imports from shared.logging; the structlog setup itself
lives in utils.logger and utils.logging_config.
"""

from utils.logger import get_logger, hash_ip
from utils.logging_config import setup_logging

__all__ = [
    "get_logger",
    "hash_ip",
    "setup_logging",
]
