"""
Token generator unit tests.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import UUID

from optin.components.tokens import (
    TOKEN_TTL_HOURS,
    generate_token,
    is_expired,
    token_expiry,
)


class TestGenerateToken:
    def test_token_is_uuid_shaped(self) -> None:
        token = generate_token()
        assert str(UUID(token)) == token

    def test_tokens_are_unique(self) -> None:
        tokens = {generate_token() for _ in range(500)}
        assert len(tokens) == 500


class TestTokenExpiry:
    def test_expiry_is_24_hours_ahead(self) -> None:
        now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        assert token_expiry(now) == now + timedelta(hours=24)
        assert TOKEN_TTL_HOURS == 24

    def test_custom_window(self) -> None:
        now = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        assert token_expiry(now, hours=2) == datetime(2026, 3, 1, 14, 0, tzinfo=UTC)


class TestIsExpired:
    def test_not_expired_before_deadline(self) -> None:
        expiry = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
        assert is_expired(expiry, expiry - timedelta(seconds=1)) is False

    def test_boundary_is_still_valid(self) -> None:
        expiry = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
        assert is_expired(expiry, expiry) is False

    def test_expired_after_deadline(self) -> None:
        expiry = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)
        assert is_expired(expiry, expiry + timedelta(seconds=1)) is True
