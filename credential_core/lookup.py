"""
Lookup Tokens
=============
Deterministic keyed digests of raw identifiers (email, phone).

Tokens let the store answer "is this email registered?" without holding the
email in clear text and without decrypting anything. They are derived from the
raw input at write time, never from the encrypted PII columns.
"""

import hashlib
from typing import Optional

import structlog

from .config import DEFAULT_TOKEN_SALT, CredentialSettings
from .errors import ConfigurationError, InvalidArgument

logger = structlog.get_logger(__name__)


class LookupTokenizer:
    """SHA-256 over ``raw + salt``, hex encoded."""

    def __init__(self, salt: str):
        if not salt:
            raise ConfigurationError("Lookup token salt is empty")
        self._salt = salt

    @classmethod
    def from_settings(cls, settings: CredentialSettings) -> "LookupTokenizer":
        """
        Build a tokenizer from settings.

        A missing salt fails closed unless the legacy default salt was
        explicitly allowed, in which case a warning is logged.
        """
        if settings.token_salt:
            return cls(settings.token_salt)

        if settings.allow_default_salt:
            logger.warning(
                "Using built-in default lookup salt",
                hint="set SECRET_KEY; default salt makes tokens guessable",
            )
            return cls(DEFAULT_TOKEN_SALT)

        raise ConfigurationError("SECRET_KEY is not configured")

    def tokenize(self, raw: str) -> str:
        """
        Derive the lookup token for a raw identifier.

        Args:
            raw: Email address or phone number exactly as the user entered it

        Returns:
            64-char hex SHA-256 digest
        """
        if not raw:
            raise InvalidArgument("Cannot tokenize an empty identifier")
        return hashlib.sha256(f"{raw}{self._salt}".encode("utf-8")).hexdigest()

    def tokenize_optional(self, raw: Optional[str]) -> Optional[str]:
        return self.tokenize(raw) if raw else None
