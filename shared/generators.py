"""
Random code generators — pure, side-effect-free functions.

All generators use the cryptographically secure ``secrets`` module.
"""

from __future__ import annotations

import secrets

OTP_MIN = 100_000
OTP_MAX = 999_999


def generate_otp_code() -> str:
    """Generate a 6-digit numeric OTP uniform over 100000–999999.

    ``secrets.randbelow`` rejection-samples internally, so every code in the
    range is equally likely.
    """
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))
