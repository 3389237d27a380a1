"""
Credential Store Contract
=========================
Async persistence interface for users, lookup tokens and OTP rows.

Implementations must enforce uniqueness of ``email_token`` and ``phone_token``
(raising AlreadyExists) and must surface transient failures as
StoreUnavailable.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from .models import NewUser, OtpRecord, TokenRecord, UserRecord


class CredentialStore(ABC):
    """Persistence operations used by the credential core."""

    @abstractmethod
    async def create_user(self, fields: NewUser) -> UserRecord:
        ...

    @abstractmethod
    async def create_token(
        self, user_id: str, email_token: str, phone_token: Optional[str] = None
    ) -> TokenRecord:
        ...

    @abstractmethod
    async def create_account(
        self, fields: NewUser, email_token: str, phone_token: Optional[str] = None
    ) -> UserRecord:
        """Create the user and its token row atomically."""

    @abstractmethod
    async def find_token_by_either_token(
        self,
        email_token: Optional[str] = None,
        phone_token: Optional[str] = None,
    ) -> Optional[TokenRecord]:
        """
        Return any token row matching ANY provided token (logical OR).

        Absent tokens contribute no predicate. With no tokens at all the
        result is None.
        """

    @abstractmethod
    async def find_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def update_user_password(
        self,
        user_id: str,
        password_hash: str,
        expected_hash: Optional[str] = None,
    ) -> bool:
        """
        Store a new password hash.

        With ``expected_hash`` the write only happens while the stored hash
        still equals it (compare-and-set); False means it had changed.

        Raises:
            NotFound: The user does not exist
        """

    @abstractmethod
    async def create_otp(
        self,
        user_id: str,
        otp_hash: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> OtpRecord:
        ...

    @abstractmethod
    async def find_latest_otp(self, user_id: str) -> Optional[OtpRecord]:
        """Newest row by ``created_at`` for the user."""

    @abstractmethod
    async def delete_otp(self, otp_id: str) -> bool:
        """Delete one row. Returns False if it was already gone."""

    @abstractmethod
    async def delete_all_otps_for_user(self, user_id: str) -> int:
        ...

    @abstractmethod
    async def consume_otp(self, otp_id: str, user_id: str) -> bool:
        """
        Atomically delete ``otp_id`` and every other OTP row for the user.

        Returns False (and deletes nothing) when ``otp_id`` no longer exists,
        meaning a concurrent consumer already won.
        """

    @abstractmethod
    async def delete_expired_otps(self, before: datetime) -> int:
        """Delete every row with ``expires_at < before``; return the count."""

    async def close(self) -> None:
        """Release resources. Default is a no-op."""
