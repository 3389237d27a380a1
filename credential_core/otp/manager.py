"""
OTP Manager
===========
Issues, verifies and expires password-reset codes.

Per-user lifecycle: NoActiveOtp -> Issued -> {Verified, Expired, Invalidated}.
Only the newest row for a user is considered during verification; older rows
are residue that the sweep removes.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import structlog

from ..errors import ConfigurationError, DeliveryError, StoreUnavailable
from ..mailer import Mailer, render_otp_email
from ..password import SecretHasher, get_cached_hasher, hash_password, verify_password
from ..store import CredentialStore, OtpRecord
from .codes import generate_otp, is_well_formed
from .models import OTPConfig, OtpOutcome

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OTPManager:
    """High-level OTP issuance and verification over a CredentialStore."""

    def __init__(
        self,
        store: CredentialStore,
        hasher: Optional[SecretHasher] = None,
        config: Optional[OTPConfig] = None,
        mailer: Optional[Mailer] = None,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.hasher = hasher or get_cached_hasher()
        self.config = config or OTPConfig()
        self.mailer = mailer
        self.clock = clock

    async def _create(self, user_id: str) -> Tuple[str, OtpRecord]:
        code = generate_otp(self.config.length)
        otp_hash = await hash_password(code, self.hasher)
        now = self.clock()

        if self.config.purge_on_issue:
            await self.store.delete_all_otps_for_user(user_id)

        record = await self.store.create_otp(
            user_id=user_id,
            otp_hash=otp_hash,
            expires_at=now + timedelta(seconds=self.config.expiry_seconds),
            created_at=now,
        )

        logger.info(
            "OTP issued",
            user_id=user_id,
            otp_id=record.id,
            expires_in=self.config.expiry_seconds,
        )
        return code, record

    async def issue(self, user_id: str) -> str:
        """
        Create and persist a new code for the user.

        Prior unconsumed rows are left in place unless ``purge_on_issue`` is set.

        Returns:
            The plain code, for the caller to deliver
        """
        code, _ = await self._create(user_id)
        return code

    async def _discard_undelivered(self, record: OtpRecord) -> None:
        try:
            await self.store.delete_otp(record.id)
        except StoreUnavailable as e:
            # The row stays until it expires and the sweep removes it
            logger.error(
                "Could not discard undelivered OTP",
                user_id=record.user_id,
                otp_id=record.id,
                error_type=type(e).__name__,
            )

    async def issue_and_send(self, user_id: str, to_address: str) -> None:
        """
        Persist a new code, then email it.

        If delivery fails the row is deleted again so no undeliverable code
        is left behind, and DeliveryError is raised. A store failure during
        that cleanup is logged; the caller still sees DeliveryError.
        """
        if self.mailer is None:
            raise ConfigurationError("No mailer configured for OTP delivery")

        code, record = await self._create(user_id)
        subject, body = render_otp_email(code, self.config.expiry_seconds)

        try:
            sent = await self.mailer.send(to_address, subject, body)
        except Exception as e:
            logger.error(
                "OTP delivery raised",
                user_id=user_id,
                otp_id=record.id,
                error_type=type(e).__name__,
            )
            await self._discard_undelivered(record)
            raise DeliveryError("Mailer raised during OTP delivery") from e

        if not sent:
            logger.warning("OTP delivery failed, rolling back", user_id=user_id, otp_id=record.id)
            await self._discard_undelivered(record)
            raise DeliveryError("Mailer reported failure")

    async def verify(self, user_id: str, code: str) -> OtpOutcome:
        """
        Check a candidate code against the user's newest OTP.

        Returns:
            VERIFIED (all rows for the user removed), NOT_FOUND,
            EXPIRED (row removed) or INVALID_CREDENTIAL (row kept for retry)

        Raises:
            StoreUnavailable: The store failed; the attempt says nothing about the code
        """
        latest = await self.store.find_latest_otp(user_id)
        if latest is None:
            logger.info("OTP verify without active code", user_id=user_id)
            return OtpOutcome.NOT_FOUND

        if latest.is_expired(self.clock()):
            await self.store.delete_otp(latest.id)
            logger.info("OTP expired", user_id=user_id, otp_id=latest.id)
            return OtpOutcome.EXPIRED

        if not is_well_formed(code, self.config.length):
            logger.warning("Malformed OTP attempt", user_id=user_id, otp_id=latest.id)
            return OtpOutcome.INVALID_CREDENTIAL

        if not await verify_password(latest.otp_hash, code, self.hasher):
            logger.warning("Invalid OTP attempt", user_id=user_id, otp_id=latest.id)
            return OtpOutcome.INVALID_CREDENTIAL

        if not await self.store.consume_otp(latest.id, user_id):
            # A concurrent verify consumed the row first
            logger.warning("OTP already consumed", user_id=user_id, otp_id=latest.id)
            return OtpOutcome.NOT_FOUND

        logger.info("OTP verified successfully", user_id=user_id, otp_id=latest.id)
        return OtpOutcome.VERIFIED

    async def sweep(self) -> int:
        """Delete every expired row across all users."""
        deleted = await self.store.delete_expired_otps(self.clock())
        logger.info("Expired OTPs swept", deleted=deleted)
        return deleted
