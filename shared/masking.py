"""Masking helpers for values echoed back to unauthenticated callers."""

from __future__ import annotations

from typing import Optional

_MASK = "***"


def mask_phone(phone: Optional[str]) -> str:
    """Show the first 4 and last 3 characters of *phone*, e.g. ``+237***789``.

    Numbers of 7 characters or fewer would be fully revealed by that rule, so
    they (and missing numbers) collapse to ``***``.
    """
    if not phone:
        return _MASK
    compact = phone.strip()
    if len(compact) <= 7:
        return _MASK
    return f"{compact[:4]}{_MASK}{compact[-3:]}"
