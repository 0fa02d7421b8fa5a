"""Participant access codes: short uppercase alphanumeric capability tokens."""
from __future__ import annotations

import secrets
import string

ACCESS_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_access_code(length: int = 6) -> str:
    """Random code drawn from A-Z0-9 with a CSPRNG."""
    if length <= 0:
        raise ValueError("Access code length must be positive")
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(length))


def normalize_access_code(code: str) -> str:
    """Codes are case-insensitive for participants typing them in."""
    return code.strip().upper()
