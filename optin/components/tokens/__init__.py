"""
Token generator component.

Confirmation/unsubscribe token generation and expiry checks.
"""

from optin.components.tokens.component import (
    TOKEN_TTL_HOURS,
    generate_token,
    is_expired,
    token_expiry,
)

__all__ = [
    "TOKEN_TTL_HOURS",
    "generate_token",
    "is_expired",
    "token_expiry",
]
