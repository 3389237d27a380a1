"""
Store Records
=============
Plain data records exchanged with a CredentialStore.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class NewUser:
    """Fields for a user row. PII values are already encrypted envelopes."""
    username: str
    email: str
    password_hash: str
    phone: Optional[str] = None


@dataclass(frozen=True)
class UserRecord:
    """A persisted user (PII fields are encrypted envelopes)."""
    id: str
    username: str
    email: str
    phone: Optional[str]
    password_hash: str


@dataclass(frozen=True)
class TokenRecord:
    """Lookup tokens owned by a user."""
    user_id: str
    email_token: str
    phone_token: Optional[str] = None


@dataclass(frozen=True)
class OtpRecord:
    """A password-reset OTP row. Never updated in place."""
    id: str
    user_id: str
    otp_hash: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now
