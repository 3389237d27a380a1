"""
OTP Models
==========
Configuration and verification outcomes for password-reset codes.
"""

from dataclasses import dataclass
from enum import Enum

from ..config import OTP_EXPIRY_SECONDS, OTP_LENGTH
from ..errors import Expired, InvalidCredential, NotFound


@dataclass(frozen=True)
class OTPConfig:
    """Configuration for OTP issuance."""
    length: int = OTP_LENGTH
    expiry_seconds: int = OTP_EXPIRY_SECONDS  # 2 minutes
    purge_on_issue: bool = False  # delete older rows for the user when issuing


class OtpOutcome(str, Enum):
    """Result of a verify attempt."""
    VERIFIED = "verified"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    INVALID_CREDENTIAL = "invalid_credential"

    def raise_for_outcome(self) -> None:
        """Raise the matching CredentialError for any non-verified outcome."""
        if self is OtpOutcome.NOT_FOUND:
            raise NotFound("No OTP found for the user")
        if self is OtpOutcome.EXPIRED:
            raise Expired("OTP has expired")
        if self is OtpOutcome.INVALID_CREDENTIAL:
            raise InvalidCredential("Invalid OTP")
