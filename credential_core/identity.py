"""
Identity Resolver
=================
Existence checks over lookup tokens. Never touches encrypted PII.

Two call-site intents are kept apart:

- login asks "is this email registered?" (``email_registered`` /
  ``resolve_user_id``), a single-identifier match;
- signup asks "is this email OR this phone already taken?"
  (``identifier_taken``), where either match rejects the signup.

``exists`` is the underlying OR query both are built on.
"""

from typing import Optional

import structlog

from .errors import InvalidArgument
from .lookup import LookupTokenizer
from .store import CredentialStore, TokenRecord

logger = structlog.get_logger(__name__)


class IdentityResolver:
    def __init__(self, store: CredentialStore, tokenizer: LookupTokenizer):
        self.store = store
        self.tokenizer = tokenizer

    async def _find(self, email: Optional[str], phone: Optional[str]) -> Optional[TokenRecord]:
        if not email and not phone:
            raise InvalidArgument("Either email or phone number must be provided.")

        return await self.store.find_token_by_either_token(
            email_token=self.tokenizer.tokenize_optional(email),
            phone_token=self.tokenizer.tokenize_optional(phone),
        )

    async def exists(self, email: Optional[str] = None, phone: Optional[str] = None) -> bool:
        """
        True if ANY provided identifier belongs to an account.

        Providing both returns True when either one alone matches; this is not
        a combined-identity check.
        """
        return await self._find(email, phone) is not None

    async def identifier_taken(self, email: str, phone: Optional[str] = None) -> bool:
        """Signup duplicate check: reject if the email or the phone is in use."""
        taken = await self.exists(email=email, phone=phone)
        if taken:
            logger.info("Signup identifier already registered")
        return taken

    async def email_registered(self, email: str) -> bool:
        """Login check: does this single email belong to an account?"""
        return await self.exists(email=email)

    async def resolve_user_id(self, email: str) -> Optional[str]:
        """User id owning ``email``, or None."""
        token = await self._find(email, None)
        return token.user_id if token else None
