"""
Short shareable codes.

Layout (12 chars, uppercase ASCII alphanumeric):
    3-letter prefix | 6 time-derived digits | 3 random characters
"""

import re
import secrets
import string
from datetime import datetime, timezone
from typing import Optional

CODE_LENGTH = 12
PREFIX_LENGTH = 3
PREFIX_PAD = "ZOD"
CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_RE = re.compile(r"^[A-Z0-9]{12}$")


def normalize_code(code: Optional[str]) -> str:
    """Codes are case-insensitive on input; stored uppercase."""
    return (code or "").strip().upper()


def is_well_formed(code: str) -> bool:
    return bool(CODE_RE.match(code))


def _time_digits(now: datetime) -> str:
    millis = int(now.timestamp() * 1000)
    return f"{millis % 1_000_000:06d}"


def _random_chars(count: int, alphabet: str = CODE_ALPHABET) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(count))


def name_prefix(name: str) -> str:
    letters = "".join(ch for ch in (name or "").upper() if "A" <= ch <= "Z")
    return (letters + PREFIX_PAD)[:PREFIX_LENGTH]


def generate_compatibility_code(issuer_name: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return name_prefix(issuer_name) + _time_digits(now) + _random_chars(3)


def generate_invite_code(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return _random_chars(PREFIX_LENGTH, string.ascii_uppercase) + _time_digits(now) + _random_chars(3)
