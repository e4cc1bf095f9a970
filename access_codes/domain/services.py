# access_codes/domain/services.py
from __future__ import annotations

import secrets
from datetime import datetime, timezone

DIGITS = "0123456789"
DEFAULT_CODE_LENGTH = 6


def generate_code(length: int = DEFAULT_CODE_LENGTH, alphabet: str = DIGITS) -> str:
    """Random code of `length` characters drawn from `alphabet`."""
    return "".join(secrets.choice(alphabet) for _ in range(length))


def normalize_code(value: str) -> str:
    """
    Canonical form used for storage and lookup.
    Humans type codes with stray spaces and mixed case.
    """
    return value.strip().upper()


def is_canonical_alphabet(alphabet: str) -> bool:
    """
    True when normalizing the alphabet keeps every character distinct.
    "aA" or " 1" would shrink the code space once codes are normalized.
    """
    if any(ch.isspace() for ch in alphabet):
        return False
    canonical = normalize_code(alphabet)
    return len(canonical) == len(alphabet) and len(set(canonical)) == len(alphabet)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
