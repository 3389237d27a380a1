"""
Account Service
===============
Signup, login and password-reset flows composed from the credential core.

Outcomes are principals, tickets or raised CredentialErrors. Raw passwords
and OTP codes never leave this module in a return value or a log line.
"""

import hmac
import secrets
from dataclasses import dataclass
from typing import Optional

import structlog

from .cipher import FieldCipher
from .config import CredentialSettings
from .identity import IdentityResolver
from .lookup import LookupTokenizer
from .mailer import Mailer
from .otp import OTPConfig, OTPManager, ResetTicket
from .otp.manager import Clock, utcnow
from .password import SecretHasher, hash_password, verify_and_upgrade, verify_password
from .schemas import LoginRequest, PasswordResetRequest, SignupRequest, parse
from .store import CredentialStore, NewUser
from .errors import AlreadyExists, InvalidArgument, InvalidCredential, NotFound

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SessionPrincipal:
    """What the session layer needs after signup or login."""
    user_id: str
    email: str


@dataclass(frozen=True)
class UserProfile:
    """Decrypted PII for an account."""
    user_id: str
    username: str
    email: str
    phone: Optional[str]


class AccountService:
    """Entry point for the authentication and recovery flows."""

    def __init__(
        self,
        store: CredentialStore,
        tokenizer: LookupTokenizer,
        cipher: FieldCipher,
        hasher: SecretHasher,
        otp_manager: OTPManager,
        tickets: ResetTicket,
        ticket_max_age: int = 600,
    ):
        self.store = store
        self.tokenizer = tokenizer
        self.cipher = cipher
        self.hasher = hasher
        self.otp = otp_manager
        self.tickets = tickets
        self.ticket_max_age = ticket_max_age
        self.identity = IdentityResolver(store, tokenizer)
        # Unknown-account logins verify against this so they cost the same as real ones
        self._dummy_hash = hasher.hash(secrets.token_urlsafe(16))

    @classmethod
    def from_settings(
        cls,
        settings: CredentialSettings,
        store: CredentialStore,
        mailer: Optional[Mailer] = None,
        clock: Clock = utcnow,
    ) -> "AccountService":
        """Wire every component from one settings object."""
        hasher = SecretHasher(settings.hasher)
        otp_manager = OTPManager(
            store,
            hasher=hasher,
            config=OTPConfig(expiry_seconds=settings.otp_expiry_seconds),
            mailer=mailer,
            clock=clock,
        )
        return cls(
            store=store,
            tokenizer=LookupTokenizer.from_settings(settings),
            cipher=FieldCipher.from_settings(settings),
            hasher=hasher,
            otp_manager=otp_manager,
            tickets=ResetTicket(
                settings.require_ticket_secret(),
                clock=lambda: clock().timestamp(),
            ),
            ticket_max_age=settings.reset_ticket_max_age,
        )

    async def signup(
        self,
        username: str,
        email: str,
        phone: str,
        password: str,
    ) -> SessionPrincipal:
        """
        Register a new account.

        Raises:
            InvalidArgument: Input failed validation
            AlreadyExists: Email or phone already registered
        """
        request = parse(SignupRequest, username=username, email=email, phone=phone, password=password)

        if await self.identity.identifier_taken(request.email, request.phone):
            raise AlreadyExists("Email or phone number already exists")

        password_hash = await hash_password(request.password, self.hasher)

        fields = NewUser(
            username=self.cipher.encrypt(request.username),
            email=self.cipher.encrypt(request.email),
            phone=self.cipher.encrypt(request.phone),
            password_hash=password_hash,
        )

        # A concurrent signup with the same identifiers loses on the unique constraint
        user = await self.store.create_account(
            fields,
            email_token=self.tokenizer.tokenize(request.email),
            phone_token=self.tokenizer.tokenize(request.phone),
        )

        logger.info("Account created", user_id=user.id)
        return SessionPrincipal(user_id=user.id, email=request.email)

    async def _burn_verification(self, password: str) -> None:
        await verify_password(self._dummy_hash, password, self.hasher)

    async def login(self, email: str, password: str) -> SessionPrincipal:
        """
        Authenticate by email and password.

        An unknown email still costs one Argon2 verification.

        Raises:
            NotFound: No account for the email
            InvalidCredential: Wrong password
        """
        request = parse(LoginRequest, email=email, password=password)

        user_id = await self.identity.resolve_user_id(request.email)
        user = await self.store.find_user_by_id(user_id) if user_id else None

        if user is None:
            await self._burn_verification(request.password)
            logger.info("Login for unknown account")
            raise NotFound("No user found with this email")

        is_valid, new_hash = await verify_and_upgrade(user.password_hash, request.password, self.hasher)
        if not is_valid:
            logger.info("Login rejected", user_id=user.id)
            raise InvalidCredential("Invalid password")

        if new_hash:
            if await self.store.update_user_password(
                user.id, new_hash, expected_hash=user.password_hash
            ):
                logger.info("Password hash upgraded", user_id=user.id)

        logger.info("Login succeeded", user_id=user.id)
        return SessionPrincipal(user_id=user.id, email=request.email)

    async def request_password_reset(self, user_id: str, email: str) -> None:
        """
        Send a reset code to the account's registered email.

        Raises:
            NotFound: Unknown user
            InvalidArgument: ``email`` is not the registered address
            DeliveryError: The email could not be sent (no code remains stored)
        """
        if not email:
            raise InvalidArgument("Email is required")

        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found")

        registered = self.cipher.decrypt(user.email)
        if not hmac.compare_digest(registered.encode("utf-8"), email.encode("utf-8")):
            logger.info("Reset requested for non-registered email", user_id=user_id)
            raise InvalidArgument("Please enter registered email only")

        await self.otp.issue_and_send(user_id, registered)

    async def verify_password_reset(self, user_id: str, code: str) -> str:
        """
        Verify a reset code.

        Returns:
            Reset ticket to present to ``reset_password``

        Raises:
            NotFound / Expired / InvalidCredential: per the verify outcome
        """
        if not code:
            raise InvalidArgument("OTP is required")

        outcome = await self.otp.verify(user_id, code)
        outcome.raise_for_outcome()

        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return self.tickets.generate(user.id, user.password_hash)

    async def reset_password(self, ticket: str, new_password: str) -> None:
        """
        Set a new password for the user named in a valid reset ticket.

        A ticket is spent by the reset it authorises: once the stored hash
        changes, the same ticket is rejected.

        Raises:
            InvalidCredential: Ticket is forged, malformed, too old or already used
        """
        request = parse(PasswordResetRequest, password=new_password)

        claims = self.tickets.verify(ticket, max_age_seconds=self.ticket_max_age)
        if claims is None:
            raise InvalidCredential("Invalid reset ticket")

        user = await self.store.find_user_by_id(claims.user_id)
        if user is None or not self.tickets.still_valid_for(claims, user.password_hash):
            logger.warning("Reset ticket replayed or stale", user_id=claims.user_id)
            raise InvalidCredential("Reset ticket already used")

        password_hash = await hash_password(request.password, self.hasher)
        updated = await self.store.update_user_password(
            user.id, password_hash, expected_hash=user.password_hash
        )
        if not updated:
            logger.warning("Concurrent reset lost the race", user_id=user.id)
            raise InvalidCredential("Reset ticket already used")

        logger.info("Password reset", user_id=user.id)

    async def load_profile(self, user_id: str) -> UserProfile:
        """Decrypt the stored PII of an account."""
        user = await self.store.find_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found")

        return UserProfile(
            user_id=user.id,
            username=self.cipher.decrypt(user.username),
            email=self.cipher.decrypt(user.email),
            phone=self.cipher.decrypt_optional(user.phone),
        )
