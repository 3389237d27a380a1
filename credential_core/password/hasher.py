"""
Secret Hasher
=============
Argon2id hasher configuration and synchronous operations.
"""

from functools import lru_cache
from typing import Optional

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from ..config import HasherConfig
from ..errors import InvalidArgument


class SecretHasher:
    """One-way hash + constant-time verify for passwords and OTP codes."""

    def __init__(self, config: Optional[HasherConfig] = None):
        self.config = config or HasherConfig()
        self._hasher = PasswordHasher(
            time_cost=self.config.time_cost,
            memory_cost=self.config.memory_cost,
            parallelism=self.config.parallelism,
            hash_len=self.config.hash_len,
            salt_len=self.config.salt_len,
            type=Type.ID,
        )

    def hash(self, secret: str) -> str:
        """
        Hash a secret using Argon2id.

        Args:
            secret: Plain text password or OTP code

        Returns:
            Encoded hash string (includes algorithm, parameters, salt, and hash)
        """
        if not secret:
            raise InvalidArgument("Secret cannot be empty")
        return self._hasher.hash(secret)

    def verify(self, digest: str, candidate: str) -> bool:
        """
        Verify a candidate against a stored digest.

        The comparison itself is done by the argon2 library in constant time.
        Malformed digests and empty input are treated as a mismatch.
        """
        if not digest or not candidate:
            return False
        try:
            return self._hasher.verify(digest, candidate)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, digest: str) -> bool:
        """True if the digest was produced with different cost parameters."""
        if not digest or not digest.startswith("$argon2"):
            return True
        try:
            return self._hasher.check_needs_rehash(digest)
        except InvalidHashError:
            return True


@lru_cache(maxsize=1)
def get_cached_hasher() -> SecretHasher:
    """Hasher with the production defaults (64 MiB, 3 iterations, 4 lanes)."""
    return SecretHasher()
