"""
ORM Tables
==========
SQLAlchemy models for users, lookup tokens and password OTPs.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, also on backends that drop tzinfo (SQLite)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("naive datetime passed to UTCDateTime column")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    username: Mapped[str] = mapped_column(Text, nullable=False)      # encrypted
    email: Mapped[str] = mapped_column(Text, nullable=False)         # encrypted
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # encrypted
    password: Mapped[str] = mapped_column(Text, nullable=False)      # argon2id

    token: Mapped[Optional["Token"]] = relationship(back_populates="user", uselist=False)
    otps: Mapped[List["PasswordOtp"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )


class Token(Base):
    __tablename__ = "tokens"

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    email_token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    phone_token: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)

    user: Mapped[User] = relationship(back_populates="token")


class PasswordOtp(Base):
    __tablename__ = "password_otps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    otp: Mapped[str] = mapped_column(Text, nullable=False)           # argon2id of the code
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)

    user: Mapped[User] = relationship(back_populates="otps")
