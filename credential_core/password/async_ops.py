"""
Async Password Hashing
======================
Async-safe wrappers that keep Argon2 off the event loop.
"""

import asyncio
from typing import Optional, Tuple

from .hasher import SecretHasher, get_cached_hasher


async def hash_password(password: str, hasher: Optional[SecretHasher] = None) -> str:
    """
    Hash a password (or OTP code) in the default executor.

    Args:
        password: Plain text secret to hash
        hasher: Hasher to use (defaults to the cached production hasher)

    Returns:
        Argon2id hash string
    """
    hasher = hasher or get_cached_hasher()
    loop = asyncio.get_running_loop()

    # Run in executor to avoid blocking the event loop
    return await loop.run_in_executor(None, hasher.hash, password)


async def verify_password(
    hash: str,
    password: str,
    hasher: Optional[SecretHasher] = None,
) -> bool:
    """
    Verify a secret against an Argon2id hash.

    Returns:
        True if the secret matches, False otherwise
    """
    hasher = hasher or get_cached_hasher()
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, hasher.verify, hash, password)


async def verify_and_upgrade(
    hash: str,
    password: str,
    hasher: Optional[SecretHasher] = None,
) -> Tuple[bool, Optional[str]]:
    """
    Verify password and return new hash if upgrade is needed.

    This is the recommended function for login flows.

    Returns:
        Tuple of (is_valid, new_hash_or_none)
    """
    hasher = hasher or get_cached_hasher()
    is_valid = await verify_password(hash, password, hasher)

    if not is_valid:
        return False, None

    if hasher.needs_rehash(hash):
        new_hash = await hash_password(password, hasher)
        return True, new_hash

    return True, None
