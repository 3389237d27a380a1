"""
Credential Errors
=================
Error taxonomy for the credential subsystem.

Every error carries a machine-readable kind and a generic, user-safe message.
Technical causes are chained (``raise ... from``) for operator logs only and
never reach the caller through ``to_public()``.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Machine-readable error kinds."""
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    EXPIRED = "expired"
    INVALID_CREDENTIAL = "invalid_credential"
    DECRYPTION_ERROR = "decryption_error"
    CONFIGURATION_ERROR = "configuration_error"
    STORE_UNAVAILABLE = "store_unavailable"
    DELIVERY_FAILED = "delivery_failed"


class CredentialError(Exception):
    """Base exception for all credential subsystem errors."""

    kind: ErrorKind = ErrorKind.INVALID_ARGUMENT
    public_message: str = "The request could not be completed."
    retryable: bool = False

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.public_message
        self.details = details
        super().__init__(f"[{self.kind.value}] {self.message}")

    def to_public(self) -> Dict[str, str]:
        """Caller-facing payload. Never includes the internal message."""
        return {
            "error": self.kind.value,
            "message": self.public_message,
        }


class InvalidArgument(CredentialError):
    """A required identifier is missing or input failed validation."""
    kind = ErrorKind.INVALID_ARGUMENT
    public_message = "The request is missing required information."


class NotFound(CredentialError):
    """No matching user or OTP."""
    kind = ErrorKind.NOT_FOUND
    public_message = "No matching record was found."


class AlreadyExists(CredentialError):
    """Email or phone number already belongs to an account."""
    kind = ErrorKind.ALREADY_EXISTS
    public_message = "Email or phone number already exists."


class Expired(CredentialError):
    """OTP is past its expiry."""
    kind = ErrorKind.EXPIRED
    public_message = "The code has expired. Please request a new one."


class InvalidCredential(CredentialError):
    """Password, OTP or reset ticket mismatch."""
    kind = ErrorKind.INVALID_CREDENTIAL
    public_message = "The credentials provided are invalid."


class DecryptionError(CredentialError):
    """Envelope is malformed or does not decrypt under the configured key."""
    kind = ErrorKind.DECRYPTION_ERROR
    public_message = "Stored data could not be read."


class ConfigurationError(CredentialError):
    """A required secret (salt, key) is not configured."""
    kind = ErrorKind.CONFIGURATION_ERROR
    public_message = "We are experiencing a configuration issue. Please try again later."


class StoreUnavailable(CredentialError):
    """Transient datastore failure. Safe for the caller to retry."""
    kind = ErrorKind.STORE_UNAVAILABLE
    public_message = "Service temporarily unavailable. Please try again."
    retryable = True


class DeliveryError(CredentialError):
    """The OTP email could not be delivered; issuance was rolled back."""
    kind = ErrorKind.DELIVERY_FAILED
    public_message = "Error while sending your OTP. Please try again."
    retryable = True


class RetryExhausted(Exception):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, message: str, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.last_exception = last_exception
