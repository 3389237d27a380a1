"""
Logging Setup
=============
Structured logging for services embedding the credential core.

Usage:
    from credential_core.logging_setup import setup_logging

    # Setup at startup
    setup_logging(service_name="accounts-api")

Modules log with ``structlog.get_logger(__name__)``. A redaction processor
masks values whose key names a secret, so a stray ``password=...`` or
``email=...`` keyword never reaches a log sink in clear text.
"""

import logging
import sys
from typing import Any, Iterable, MutableMapping

import structlog

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = frozenset({
    "password",
    "new_password",
    "otp",
    "code",
    "email",
    "phone",
    "username",
    "secret",
    "salt",
    "key",
    "encryption_key",
    "token",
    "ticket",
    "plaintext",
})


class RedactSecrets:
    """structlog processor that masks sensitive event keys."""

    def __init__(self, keys: Iterable[str] = SENSITIVE_KEYS):
        self.keys = frozenset(k.lower() for k in keys)

    def __call__(
        self, logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
    ) -> MutableMapping[str, Any]:
        for key in list(event_dict.keys()):
            if key.lower() in self.keys:
                event_dict[key] = REDACTED
        return event_dict


def _shared_processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        RedactSecrets(),
        structlog.processors.StackInfoRenderer(),
    ]


def setup_logging(
    service_name: str,
    level: str = "INFO",
    json_output: bool = True,
) -> logging.Logger:
    """
    Configure stdlib logging and structlog for a service.

    Args:
        service_name: Name of the service (e.g., "accounts-api")
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Whether to output JSON (for production)

    Returns:
        Configured root logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=_shared_processors() + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)

    structlog.get_logger(__name__).info("Logging configured", service_name=service_name)
    return root_logger
