"""
Token generator component.

Opaque tokens for double opt-in confirmation and self-service unsubscribe,
plus the fixed 24h confirmation expiry policy.

Both token kinds come from the same generator; they differ only in the field
they are stored under.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

TOKEN_TTL_HOURS = 24


def generate_token() -> str:
    """Return a random, globally unique opaque token (UUID4, 122 bits)."""
    return str(uuid.uuid4())


def token_expiry(now: datetime, hours: int = TOKEN_TTL_HOURS) -> datetime:
    """Expiry instant for a token issued at ``now``."""
    return now + timedelta(hours=hours)


def is_expired(expires_at: datetime, now: datetime) -> bool:
    """
    Check whether a token has expired.

    Strict comparison: a token is still valid at exactly ``expires_at``.
    """
    return now > expires_at
