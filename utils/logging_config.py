"""
Centralized logging configuration for the guest-access service.

This module sets up structured logging with:
- Environment-based configuration (dev vs production)
- JSON formatting for production, pretty console for development
- IP hashing for GDPR compliance in production
- Redaction of secrets and patient identifiers
- Sentry integration for error tracking
"""

import hashlib
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

import structlog
from structlog.types import EventDict, Processor


# Environment configuration (defaults; setup_logging() may override them)
ENV = os.getenv("ENV", "development")
IS_PRODUCTION = ENV == "production"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if IS_PRODUCTION else "DEBUG")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json" if IS_PRODUCTION else "console")

# Sensitive fields to redact from logs
REDACTED_FIELDS = {
    "password",
    "password_hash",
    "token",
    "code_hash",
    "patient_dob",
    "dob",
    "Authorization",
    "Cookie",
    "secret",
    "key",
}

# Substrings that mark a field as sensitive wherever they appear
_SENSITIVE_MARKERS = ("password", "passcode", "token", "secret", "dob")

# Event dict keys that are never redacted
_STRUCTURAL_KEYS = {"level", "event", "timestamp", "logger", "request_id"}


def hash_ip(ip_address: str) -> str:
    """
    Hash IP address for privacy in production.

    In production, returns SHA-256 hash (first 16 chars) for GDPR compliance.
    In development, returns the original IP for easier debugging.
    """
    if IS_PRODUCTION and ip_address:
        return hashlib.sha256(ip_address.encode()).hexdigest()[:16]
    return ip_address


def add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO format timestamp to event dict."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def redact_sensitive_fields(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Redact sensitive fields from logs."""
    for key in list(event_dict.keys()):
        if key in _STRUCTURAL_KEYS:
            continue
        lowered = key.lower()
        if lowered in REDACTED_FIELDS or any(m in lowered for m in _SENSITIVE_MARKERS):
            event_dict[key] = "***REDACTED***"
    return event_dict


def configure_structlog(log_format: str) -> None:
    """
    Configure structlog with appropriate processors for the environment.

    Production: JSON formatting for easy parsing
    Development: Pretty console formatting with colors
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_timestamp,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive_fields,
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            pad_event=15,
            sort_keys=False,
        )

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_stdlib_logging(log_level: str) -> None:
    """Route standard library logging to stdout at *log_level*."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def setup_logging(
    env: Optional[str] = None,
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Initialize logging system for the application.

    This is the main entry point for logging configuration and is called
    from create_app() with values taken from LoggingSettings.
    """
    global ENV, IS_PRODUCTION, LOG_LEVEL, LOG_FORMAT

    if env is not None:
        ENV = env
        IS_PRODUCTION = env == "production"
    LOG_LEVEL = log_level or LOG_LEVEL
    LOG_FORMAT = log_format or LOG_FORMAT

    configure_stdlib_logging(LOG_LEVEL)
    configure_structlog(LOG_FORMAT)

    logger = structlog.get_logger(__name__)
    logger.info(
        "logging_initialized",
        env=ENV,
        log_level=LOG_LEVEL,
        log_format=LOG_FORMAT,
        sentry_enabled=bool(os.getenv("SENTRY_DSN")),
    )
