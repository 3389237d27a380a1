"""
Reset Ticket
============
Signed proof that a user passed OTP verification, consumed by the
password-reset step.

A ticket carries a fingerprint of the account's password hash at the time
it was issued. Once the password changes the fingerprint no longer matches,
so a ticket opens exactly one reset.
"""

import base64
import binascii
import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..errors import ConfigurationError

TICKET_VERSION = "2"
FINGERPRINT_LENGTH = 16


@dataclass(frozen=True)
class TicketClaims:
    """Verified ticket contents."""
    user_id: str
    fingerprint: str
    issued_at: int


class ResetTicket:
    """Generates and verifies HMAC-signed reset tickets."""

    def __init__(self, secret: Optional[str], clock: Callable[[], float] = time.time):
        self.secret = secret
        self.clock = clock

    def _mac(self, message: str) -> str:
        if not self.secret:
            raise ConfigurationError("RESET_TICKET_SECRET is not configured")
        return hmac.new(
            self.secret.encode(),
            message.encode(),
            hashlib.sha256,
        ).hexdigest()

    def fingerprint(self, password_hash: str) -> str:
        """Short keyed digest of the stored password hash."""
        return self._mac(f"fp:{password_hash}")[:FINGERPRINT_LENGTH]

    def generate(self, user_id: str, password_hash: str) -> str:
        """
        Generate a ticket for a user who just verified an OTP.

        Args:
            user_id: Account the ticket opens
            password_hash: The account's current stored hash

        Returns:
            Signed ticket ``payload.signature``
        """
        payload = {
            "uid": user_id,
            "fp": self.fingerprint(password_hash),
            "ts": int(self.clock()),
            "ver": TICKET_VERSION,
        }

        payload_json = json.dumps(payload, separators=(',', ':'))
        payload_b64 = base64.urlsafe_b64encode(payload_json.encode()).decode()

        return f"{payload_b64}.{self._mac(payload_b64)}"

    def verify(self, ticket: str, max_age_seconds: int = 600) -> Optional[TicketClaims]:
        """
        Check signature, version and age.

        Returns:
            TicketClaims if valid, None otherwise
        """
        parts = (ticket or "").split('.')
        if len(parts) != 2:
            return None

        payload_b64, signature = parts
        if not hmac.compare_digest(signature, self._mac(payload_b64)):
            return None

        try:
            payload = json.loads(base64.urlsafe_b64decode(payload_b64).decode())
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return None

        if not isinstance(payload, dict) or payload.get("ver") != TICKET_VERSION:
            return None

        issued_at = payload.get("ts")
        if not isinstance(issued_at, int):
            return None
        age = self.clock() - issued_at
        if age < 0 or age > max_age_seconds:
            return None

        user_id = payload.get("uid")
        fingerprint = payload.get("fp")
        if not (isinstance(user_id, str) and user_id and isinstance(fingerprint, str)):
            return None

        return TicketClaims(user_id=user_id, fingerprint=fingerprint, issued_at=issued_at)

    def still_valid_for(self, claims: TicketClaims, password_hash: str) -> bool:
        """True while the account's password is unchanged since issue."""
        return hmac.compare_digest(claims.fingerprint, self.fingerprint(password_hash))
