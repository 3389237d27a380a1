"""
Tests for Settings, Errors and Logging
=======================================
"""

import logging

import pytest
import structlog

from credential_core.cipher import FieldCipher
from credential_core.config import CredentialSettings
from credential_core.errors import (
    ConfigurationError,
    CredentialError,
    ErrorKind,
    StoreUnavailable,
)
from credential_core.logging_setup import REDACTED, RedactSecrets, setup_logging


class TestSettings:
    """Tests for environment-driven configuration."""

    def test_from_env(self):
        settings = CredentialSettings.from_env({
            "SECRET_KEY": "salt",
            "ENCRYPTION_KEY": "key",
            "RESET_TICKET_SECRET": "ticket",
            "OTP_EXPIRY_SECONDS": "90",
            "ARGON2_MEMORY_COST": "1024",
            "SMTP_HOST": "smtp.example.org",
            "SMTP_PORT": "587",
            "SMTP_USER": "mailer@example.org",
            "SMTP_STARTTLS": "true",
        })

        assert settings.token_salt == "salt"
        assert settings.encryption_key == "key"
        assert settings.otp_expiry_seconds == 90
        assert settings.hasher.memory_cost == 1024
        assert settings.hasher.time_cost == 3
        assert settings.smtp.port == 587
        assert settings.smtp.starttls is True
        assert settings.smtp.from_address == "mailer@example.org"
        assert settings.allow_default_salt is False

    def test_defaults(self):
        settings = CredentialSettings.from_env({})

        assert settings.token_salt is None
        assert settings.otp_expiry_seconds == 120
        assert settings.smtp.host == "smtp.gmail.com"
        assert settings.smtp.port == 465

    def test_required_secrets_fail_closed(self):
        settings = CredentialSettings.from_env({})

        with pytest.raises(ConfigurationError):
            settings.require_encryption_key()
        with pytest.raises(ConfigurationError):
            settings.require_ticket_secret()

    def test_cipher_wiring_fails_closed(self):
        with pytest.raises(ConfigurationError):
            FieldCipher.from_settings(CredentialSettings.from_env({}))

        cipher = FieldCipher.from_settings(CredentialSettings(encryption_key="k"))
        assert cipher.configured


class TestErrors:
    """Tests for the error taxonomy."""

    def test_public_payload_is_generic(self):
        error = StoreUnavailable("pool exhausted on db-primary-3")

        public = error.to_public()

        assert public == {
            "error": "store_unavailable",
            "message": StoreUnavailable.public_message,
        }
        assert "db-primary-3" not in str(public)
        assert error.retryable is True

    def test_every_kind_has_an_error(self):
        kinds = {cls.kind for cls in CredentialError.__subclasses__()}

        assert kinds == set(ErrorKind)


class TestLogging:
    """Tests for structured logging and redaction."""

    def test_redaction_processor(self):
        event = RedactSecrets()(None, "info", {
            "event": "login",
            "password": "hunter2",
            "Email": "a@x.com",
            "user_id": "u1",
        })

        assert event["password"] == REDACTED
        assert event["Email"] == REDACTED
        assert event["user_id"] == "u1"

    def test_setup_logging_redacts_output(self, capsys):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            setup_logging("test-service", level="INFO", json_output=True)
            structlog.get_logger("credential_core.test").info(
                "Login rejected", password="hunter2", user_id="u1"
            )

            out = capsys.readouterr().out
            assert "Login rejected" in out
            assert "hunter2" not in out
            assert REDACTED in out
            assert "test-service" in out
        finally:
            structlog.reset_defaults()
            structlog.contextvars.clear_contextvars()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
