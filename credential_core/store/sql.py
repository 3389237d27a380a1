"""
SQL Credential Store
====================
CredentialStore backed by SQLAlchemy async sessions.

Every operation runs in its own transaction under ``operation_timeout``.
Integrity errors are split by constraint: unique violations become
AlreadyExists, foreign-key violations NotFound and the rest InvalidArgument.
Timeouts, connection errors and other driver failures become StoreUnavailable.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import AlreadyExists, InvalidArgument, NotFound, StoreUnavailable
from .base import CredentialStore
from .database import Database
from .models import NewUser, OtpRecord, TokenRecord, UserRecord
from .tables import PasswordOtp, Token, User

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _user_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        username=row.username,
        email=row.email,
        phone=row.phone,
        password_hash=row.password,
    )


def _token_record(row: Token) -> TokenRecord:
    return TokenRecord(
        user_id=row.user_id,
        email_token=row.email_token,
        phone_token=row.phone_token,
    )


def _otp_record(row: PasswordOtp) -> OtpRecord:
    return OtpRecord(
        id=row.id,
        user_id=row.user_id,
        otp_hash=row.otp,
        created_at=row.created_at,
        expires_at=row.expires_at,
    )


# SQLSTATE classes from the SQL standard, as reported by psycopg and asyncpg
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def _integrity_kind(error: IntegrityError) -> str:
    """Classify an IntegrityError as "unique", "foreign_key" or "other"."""
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        if code == UNIQUE_VIOLATION:
            return "unique"
        if code == FOREIGN_KEY_VIOLATION:
            return "foreign_key"
        return "other"

    # Drivers without SQLSTATE (sqlite) only expose the message
    message = str(orig).lower()
    if "unique" in message:
        return "unique"
    if "foreign key" in message:
        return "foreign_key"
    return "other"


class SQLCredentialStore(CredentialStore):
    """Relational implementation of the credential store."""

    def __init__(self, database: Database, operation_timeout: float = 5.0):
        self.database = database
        self.operation_timeout = operation_timeout

    async def _run(self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async def _unit() -> T:
            async with self.database.session() as session:
                return await work(session)

        try:
            return await asyncio.wait_for(_unit(), timeout=self.operation_timeout)
        except IntegrityError as e:
            kind = _integrity_kind(e)
            logger.info("Store integrity violation", operation=operation, constraint=kind)
            if kind == "unique":
                raise AlreadyExists("Unique constraint violated") from e
            if kind == "foreign_key":
                raise NotFound("Referenced user does not exist") from e
            raise InvalidArgument("Row violates a table constraint") from e
        except asyncio.TimeoutError as e:
            logger.warning(
                "Store operation timed out",
                operation=operation,
                timeout=self.operation_timeout,
            )
            raise StoreUnavailable(f"{operation} timed out") from e
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Store operation failed",
                operation=operation,
                error_type=type(e).__name__,
            )
            raise StoreUnavailable(f"{operation} failed") from e

    async def create_user(self, fields: NewUser) -> UserRecord:
        async def work(session: AsyncSession) -> UserRecord:
            row = User(
                username=fields.username,
                email=fields.email,
                phone=fields.phone,
                password=fields.password_hash,
            )
            session.add(row)
            await session.flush()
            return _user_record(row)

        return await self._run("create_user", work)

    async def create_token(
        self, user_id: str, email_token: str, phone_token: Optional[str] = None
    ) -> TokenRecord:
        async def work(session: AsyncSession) -> TokenRecord:
            row = Token(user_id=user_id, email_token=email_token, phone_token=phone_token)
            session.add(row)
            await session.flush()
            return _token_record(row)

        return await self._run("create_token", work)

    async def create_account(
        self, fields: NewUser, email_token: str, phone_token: Optional[str] = None
    ) -> UserRecord:
        async def work(session: AsyncSession) -> UserRecord:
            user = User(
                username=fields.username,
                email=fields.email,
                phone=fields.phone,
                password=fields.password_hash,
            )
            session.add(user)
            await session.flush()
            session.add(Token(user_id=user.id, email_token=email_token, phone_token=phone_token))
            await session.flush()
            return _user_record(user)

        return await self._run("create_account", work)

    async def find_token_by_either_token(
        self,
        email_token: Optional[str] = None,
        phone_token: Optional[str] = None,
    ) -> Optional[TokenRecord]:
        conditions = []
        if email_token:
            conditions.append(Token.email_token == email_token)
        if phone_token:
            conditions.append(Token.phone_token == phone_token)
        if not conditions:
            return None

        async def work(session: AsyncSession) -> Optional[TokenRecord]:
            result = await session.execute(select(Token).where(or_(*conditions)).limit(1))
            row = result.scalars().first()
            return _token_record(row) if row else None

        return await self._run("find_token_by_either_token", work)

    async def find_user_by_id(self, user_id: str) -> Optional[UserRecord]:
        async def work(session: AsyncSession) -> Optional[UserRecord]:
            row = await session.get(User, user_id)
            return _user_record(row) if row else None

        return await self._run("find_user_by_id", work)

    async def update_user_password(
        self,
        user_id: str,
        password_hash: str,
        expected_hash: Optional[str] = None,
    ) -> bool:
        async def work(session: AsyncSession) -> Optional[bool]:
            stmt = update(User).where(User.id == user_id)
            if expected_hash is not None:
                stmt = stmt.where(User.password == expected_hash)
            result = await session.execute(stmt.values(password=password_hash))
            if result.rowcount:
                return True
            # Zero rows: either the user is gone or the hash moved on
            exists = await session.scalar(select(User.id).where(User.id == user_id))
            return False if exists else None

        updated = await self._run("update_user_password", work)
        if updated is None:
            raise NotFound("user does not exist")
        return updated

    async def create_otp(
        self,
        user_id: str,
        otp_hash: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> OtpRecord:
        async def work(session: AsyncSession) -> OtpRecord:
            row = PasswordOtp(
                user_id=user_id,
                otp=otp_hash,
                created_at=created_at,
                expires_at=expires_at,
            )
            session.add(row)
            await session.flush()
            return _otp_record(row)

        return await self._run("create_otp", work)

    async def find_latest_otp(self, user_id: str) -> Optional[OtpRecord]:
        async def work(session: AsyncSession) -> Optional[OtpRecord]:
            result = await session.execute(
                select(PasswordOtp)
                .where(PasswordOtp.user_id == user_id)
                .order_by(PasswordOtp.created_at.desc())
                .limit(1)
            )
            row = result.scalars().first()
            return _otp_record(row) if row else None

        return await self._run("find_latest_otp", work)

    async def delete_otp(self, otp_id: str) -> bool:
        async def work(session: AsyncSession) -> bool:
            result = await session.execute(delete(PasswordOtp).where(PasswordOtp.id == otp_id))
            return result.rowcount > 0

        return await self._run("delete_otp", work)

    async def delete_all_otps_for_user(self, user_id: str) -> int:
        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                delete(PasswordOtp).where(PasswordOtp.user_id == user_id)
            )
            return result.rowcount

        return await self._run("delete_all_otps_for_user", work)

    async def consume_otp(self, otp_id: str, user_id: str) -> bool:
        async def work(session: AsyncSession) -> bool:
            # Conditional delete of the verified row decides the winner
            claimed = await session.execute(
                delete(PasswordOtp).where(
                    PasswordOtp.id == otp_id,
                    PasswordOtp.user_id == user_id,
                )
            )
            if claimed.rowcount == 0:
                return False
            await session.execute(delete(PasswordOtp).where(PasswordOtp.user_id == user_id))
            return True

        return await self._run("consume_otp", work)

    async def delete_expired_otps(self, before: datetime) -> int:
        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                delete(PasswordOtp).where(PasswordOtp.expires_at < before)
            )
            return result.rowcount

        return await self._run("delete_expired_otps", work)

    async def close(self) -> None:
        await self.database.close()
