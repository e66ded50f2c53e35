"""
Subscriber component ports.

Protocol interfaces for the key-value namespace, the clock and the email
facade the lifecycle depends on.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from optin.components.email.models import EmailResult


class KVStoreError(Exception):
    """The key-value backend failed (I/O, corruption, connectivity)."""

    pass


class KVStorePort(Protocol):
    """
    Key-value namespace.

    Values are strings; JSON documents are stored serialized. Every call
    is a single independent operation: no transactions, no conditional
    writes. Implementations raise KVStoreError on backend failure.
    """

    def get(self, key: str) -> str | None:
        """Raw value, or None if absent/expired."""
        ...

    def get_json(self, key: str) -> Any | None:
        """Parsed JSON value, or None if absent/expired/not JSON."""
        ...

    def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Write ``value``; with ``ttl_seconds`` the key expires after that long."""
        ...

    def delete(self, key: str) -> None:
        """Remove ``key`` (no-op when absent)."""
        ...

    def list_keys(self, prefix: str) -> list[str]:
        """All live key names starting with ``prefix``. Full scan, no cursor."""
        ...


class ClockPort(Protocol):
    def now_utc(self) -> datetime:
        """Current time, timezone-aware UTC."""
        ...


class SubscriberEmailPort(Protocol):
    """The lifecycle-facing slice of EmailService."""

    @property
    def provider_name(self) -> str:
        ...

    def send_confirmation_email(self, email: str, token: str) -> EmailResult:
        ...

    def send_welcome_email(self, email: str, unsubscribe_token: str | None = None) -> EmailResult:
        ...
