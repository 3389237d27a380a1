"""
In-Memory Credential Store
==========================
Dict-backed CredentialStore for development and testing.

Use SQLCredentialStore in production.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from ..errors import AlreadyExists, NotFound
from .base import CredentialStore
from .models import NewUser, OtpRecord, TokenRecord, UserRecord


class InMemoryCredentialStore(CredentialStore):
    """
    Simple in-memory store.

    A single asyncio.Lock serialises mutations so compound operations
    (create_account, consume_otp) are atomic with respect to other tasks.
    """

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.tokens: Dict[str, TokenRecord] = {}
        self.otps: Dict[str, OtpRecord] = {}
        self._lock = asyncio.Lock()

    def _check_unique(self, email_token: str, phone_token: Optional[str]) -> None:
        for token in self.tokens.values():
            if token.email_token == email_token:
                raise AlreadyExists("email_token already exists")
            if phone_token and token.phone_token == phone_token:
                raise AlreadyExists("phone_token already exists")

    def _insert_user(self, fields: NewUser) -> UserRecord:
        user = UserRecord(
            id=str(uuid.uuid4()),
            username=fields.username,
            email=fields.email,
            phone=fields.phone,
            password_hash=fields.password_hash,
        )
        self.users[user.id] = user
        return user

    def _insert_token(
        self, user_id: str, email_token: str, phone_token: Optional[str]
    ) -> TokenRecord:
        if user_id not in self.users:
            raise NotFound("user does not exist")
        if user_id in self.tokens:
            raise AlreadyExists("user already has tokens")
        self._check_unique(email_token, phone_token)
        token = TokenRecord(user_id=user_id, email_token=email_token, phone_token=phone_token)
        self.tokens[user_id] = token
        return token

    async def create_user(self, fields: NewUser) -> UserRecord:
        async with self._lock:
            return self._insert_user(fields)

    async def create_token(
        self, user_id: str, email_token: str, phone_token: Optional[str] = None
    ) -> TokenRecord:
        async with self._lock:
            return self._insert_token(user_id, email_token, phone_token)

    async def create_account(
        self, fields: NewUser, email_token: str, phone_token: Optional[str] = None
    ) -> UserRecord:
        async with self._lock:
            self._check_unique(email_token, phone_token)
            user = self._insert_user(fields)
            self._insert_token(user.id, email_token, phone_token)
            return user

    async def find_token_by_either_token(
        self,
        email_token: Optional[str] = None,
        phone_token: Optional[str] = None,
    ) -> Optional[TokenRecord]:
        if not email_token and not phone_token:
            return None
        for token in self.tokens.values():
            if email_token and token.email_token == email_token:
                return token
            if phone_token and token.phone_token == phone_token:
                return token
        return None

    async def find_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    async def update_user_password(
        self,
        user_id: str,
        password_hash: str,
        expected_hash: Optional[str] = None,
    ) -> bool:
        async with self._lock:
            user = self.users.get(user_id)
            if user is None:
                raise NotFound("user does not exist")
            if expected_hash is not None and user.password_hash != expected_hash:
                return False
            self.users[user_id] = UserRecord(
                id=user.id,
                username=user.username,
                email=user.email,
                phone=user.phone,
                password_hash=password_hash,
            )
            return True

    async def create_otp(
        self,
        user_id: str,
        otp_hash: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> OtpRecord:
        async with self._lock:
            record = OtpRecord(
                id=str(uuid.uuid4()),
                user_id=user_id,
                otp_hash=otp_hash,
                created_at=created_at,
                expires_at=expires_at,
            )
            self.otps[record.id] = record
            return record

    def otps_for_user(self, user_id: str) -> List[OtpRecord]:
        return [otp for otp in self.otps.values() if otp.user_id == user_id]

    async def find_latest_otp(self, user_id: str) -> Optional[OtpRecord]:
        rows = self.otps_for_user(user_id)
        if not rows:
            return None
        # Newest created_at wins; insertion order breaks exact ties
        return max(enumerate(rows), key=lambda item: (item[1].created_at, item[0]))[1]

    async def delete_otp(self, otp_id: str) -> bool:
        async with self._lock:
            return self.otps.pop(otp_id, None) is not None

    async def delete_all_otps_for_user(self, user_id: str) -> int:
        async with self._lock:
            return self._delete_where(lambda otp: otp.user_id == user_id)

    async def consume_otp(self, otp_id: str, user_id: str) -> bool:
        async with self._lock:
            if otp_id not in self.otps:
                return False
            self._delete_where(lambda otp: otp.user_id == user_id or otp.id == otp_id)
            return True

    async def delete_expired_otps(self, before: datetime) -> int:
        async with self._lock:
            return self._delete_where(lambda otp: otp.expires_at < before)

    def _delete_where(self, predicate) -> int:
        doomed = [otp_id for otp_id, otp in self.otps.items() if predicate(otp)]
        for otp_id in doomed:
            del self.otps[otp_id]
        return len(doomed)
