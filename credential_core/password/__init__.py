"""
Password Hashing
================
Argon2id hashing for account passwords and OTP codes.

Argon2id is memory-hard, so each verification is deliberately expensive.
Both passwords and short-lived OTP codes go through the same primitive; codes
are never stored or compared in plaintext.

CPU-bound work runs in a thread pool executor in the async helpers.
"""

from .hasher import SecretHasher, get_cached_hasher
from .async_ops import hash_password, verify_password, verify_and_upgrade

__all__ = [
    # Hasher
    "SecretHasher",
    "get_cached_hasher",
    # Async Operations
    "hash_password",
    "verify_password",
    "verify_and_upgrade",
]
