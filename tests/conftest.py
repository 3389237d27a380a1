"""
Shared fixtures for credential-core tests.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import pytest

from credential_core.config import CredentialSettings, HasherConfig
from credential_core.mailer import Mailer

# Cheap Argon2 parameters so the suite stays fast
FAST_HASHER = HasherConfig(time_cost=1, memory_cost=8, parallelism=1)

OTP_IN_BODY = re.compile(r"Your OTP is: (\d{6})")


class FakeClock:
    """Mutable wall clock."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class RecordingMailer(Mailer):
    """Captures sent mail; can be told to fail or raise."""

    def __init__(self, succeed: bool = True, raise_error: Optional[Exception] = None):
        self.succeed = succeed
        self.raise_error = raise_error
        self.sent: List[Tuple[str, str, str]] = []

    async def send(self, to_address: str, subject: str, body: str) -> bool:
        if self.raise_error is not None:
            raise self.raise_error
        if self.succeed:
            self.sent.append((to_address, subject, body))
        return self.succeed

    def last_code(self) -> str:
        _, _, body = self.sent[-1]
        return OTP_IN_BODY.search(body).group(1)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> CredentialSettings:
    return CredentialSettings(
        token_salt="test-salt",
        encryption_key="test-encryption-key",
        ticket_secret="test-ticket-secret",
        hasher=FAST_HASHER,
    )


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def store():
    from credential_core.store import InMemoryCredentialStore

    return InMemoryCredentialStore()


@pytest.fixture
def hasher():
    from credential_core.password import SecretHasher

    return SecretHasher(FAST_HASHER)


@pytest.fixture
def mailer_factory():
    return RecordingMailer
