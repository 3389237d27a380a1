"""
OTP Codes
=========
Generation and shape checks for numeric one-time codes.
"""

import secrets


def generate_otp(length: int = 6) -> str:
    """
    Generate a secure random numeric OTP.

    Args:
        length: Number of digits

    Returns:
        Zero-padded OTP string
    """
    return str(secrets.randbelow(10 ** length)).zfill(length)


def is_well_formed(code: str, length: int = 6) -> bool:
    """True if ``code`` is exactly ``length`` ASCII digits."""
    return (
        isinstance(code, str)
        and len(code) == length
        and code.isascii()
        and code.isdigit()
    )
