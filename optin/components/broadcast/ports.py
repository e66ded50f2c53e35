"""
Broadcast component ports.
"""

from __future__ import annotations

from typing import Protocol

from optin.components.email.models import EmailResult


class NewsletterSenderPort(Protocol):
    """The broadcast-facing slice of EmailService."""

    def send_newsletter(
        self,
        email: str,
        subject: str,
        content: str,
        unsubscribe_token: str | None = None,
    ) -> EmailResult:
        ...


class SleepPort(Protocol):
    def __call__(self, seconds: float) -> None: ...


class MonotonicPort(Protocol):
    def __call__(self) -> float: ...
