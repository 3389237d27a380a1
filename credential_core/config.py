"""
Credential Configuration
========================
Static secrets and cost parameters consumed by the credential core.

Values are loaded once by the process entry point and injected into each
component. Nothing in the package reads the environment at call time.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .errors import ConfigurationError

# Legacy fallback salt. Only honoured when explicitly allowed.
DEFAULT_TOKEN_SALT = "49"

OTP_EXPIRY_SECONDS = 120
OTP_LENGTH = 6
RESET_TICKET_MAX_AGE_SECONDS = 600
SWEEP_INTERVAL_SECONDS = 7 * 24 * 60 * 60  # weekly

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class HasherConfig:
    """Argon2id cost parameters."""
    time_cost: int = 3          # Number of iterations
    memory_cost: int = 65536    # 64MB memory (64 * 1024 KB)
    parallelism: int = 4        # 4 parallel lanes
    hash_len: int = 32
    salt_len: int = 16


@dataclass(frozen=True)
class SMTPConfig:
    """Outbound mail settings."""
    host: str = "smtp.gmail.com"
    port: int = 465
    username: Optional[str] = None
    password: Optional[str] = None
    from_address: str = "no-reply@example.com"
    from_name: str = "Account Security"
    starttls: bool = False
    timeout: float = 10.0


@dataclass(frozen=True)
class CredentialSettings:
    """Process-wide configuration for the credential core."""
    token_salt: Optional[str] = None
    encryption_key: Optional[str] = None
    ticket_secret: Optional[str] = None
    allow_default_salt: bool = False
    otp_expiry_seconds: int = OTP_EXPIRY_SECONDS
    reset_ticket_max_age: int = RESET_TICKET_MAX_AGE_SECONDS
    store_timeout: float = 5.0
    hasher: HasherConfig = field(default_factory=HasherConfig)
    smtp: SMTPConfig = field(default_factory=SMTPConfig)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "CredentialSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            CredentialSettings instance
        """
        env = os.environ if environ is None else environ

        smtp_user = env.get("SMTP_USER") or None
        smtp = SMTPConfig(
            host=env.get("SMTP_HOST", "smtp.gmail.com"),
            port=int(env.get("SMTP_PORT", "465")),
            username=smtp_user,
            password=env.get("SMTP_PASS") or None,
            from_address=env.get("FROM_EMAIL", smtp_user or "no-reply@example.com"),
            from_name=env.get("FROM_NAME", "Account Security"),
            starttls=_flag(env.get("SMTP_STARTTLS")),
            timeout=float(env.get("SMTP_TIMEOUT", "10")),
        )

        hasher = HasherConfig(
            time_cost=int(env.get("ARGON2_TIME_COST", "3")),
            memory_cost=int(env.get("ARGON2_MEMORY_COST", "65536")),
            parallelism=int(env.get("ARGON2_PARALLELISM", "4")),
        )

        return cls(
            token_salt=env.get("SECRET_KEY") or None,
            encryption_key=env.get("ENCRYPTION_KEY") or None,
            ticket_secret=env.get("RESET_TICKET_SECRET") or None,
            allow_default_salt=_flag(env.get("CREDENTIAL_ALLOW_DEFAULT_SALT")),
            otp_expiry_seconds=int(env.get("OTP_EXPIRY_SECONDS", str(OTP_EXPIRY_SECONDS))),
            reset_ticket_max_age=int(
                env.get("RESET_TICKET_MAX_AGE", str(RESET_TICKET_MAX_AGE_SECONDS))
            ),
            store_timeout=float(env.get("STORE_TIMEOUT_SECONDS", "5")),
            hasher=hasher,
            smtp=smtp,
        )

    def require_encryption_key(self) -> str:
        """Return the cipher secret or fail closed."""
        if not self.encryption_key:
            raise ConfigurationError("ENCRYPTION_KEY is not configured")
        return self.encryption_key

    def require_ticket_secret(self) -> str:
        """Return the reset ticket signing secret or fail closed."""
        if not self.ticket_secret:
            raise ConfigurationError("RESET_TICKET_SECRET is not configured")
        return self.ticket_secret
