"""
OTP Generator
=============
Secure numeric code generation and format validation.

Codes are strings end-to-end; they are never converted to integers.
"""

import hmac
import secrets

DEFAULT_OTP_LENGTH = 6

_ASCII_DIGITS = frozenset("0123456789")


def generate_otp(length: int = DEFAULT_OTP_LENGTH) -> str:
    """
    Generate a secure random numeric OTP.

    The code is drawn uniformly from the full N-digit space
    (100000-999999 for N=6), so it never has a leading zero.

    Args:
        length: Number of digits

    Returns:
        OTP string of exactly ``length`` digits
    """
    if length <= 0:
        raise ValueError("OTP length must be positive")
    low = 10 ** (length - 1)
    high = 10 ** length
    return str(low + secrets.randbelow(high - low))


def is_valid_otp_format(code, length: int = DEFAULT_OTP_LENGTH) -> bool:
    """Return True iff ``code`` is a string of exactly ``length`` ASCII digits."""
    if not isinstance(code, str) or len(code) != length:
        return False
    return all(ch in _ASCII_DIGITS for ch in code)


def codes_match(candidate: str, stored: str) -> bool:
    """
    Compare a candidate code with the stored one.

    Uses constant-time comparison to prevent timing attacks.
    """
    return hmac.compare_digest(candidate.encode(), stored.encode())
