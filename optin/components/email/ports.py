"""
Email component ports.

Protocol interfaces every provider adapter satisfies.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from optin.components.email.models import (
    ConfirmationEmailParams,
    EmailResult,
    NewsletterEmailParams,
    WelcomeEmailParams,
)


class EmailProviderPort(Protocol):
    """
    Transactional email provider.

    Implementations:
    - ResendProvider, SESProvider, PostmarkProvider, SendGridProvider,
      MailgunProvider: third-party HTTP APIs
    - DevEmailProvider: logs instead of sending (dev/test)

    Send methods must not raise; failures come back as
    ``EmailResult(success=False)`` tagged with the provider name.
    """

    name: str

    def validate_config(self) -> bool:
        """True iff every required credential/field is present."""
        ...

    def send_confirmation_email(self, params: ConfirmationEmailParams) -> EmailResult:
        """Send the double opt-in confirmation email."""
        ...

    def send_welcome_email(self, params: WelcomeEmailParams) -> EmailResult:
        """Send the post-confirmation welcome email."""
        ...


@runtime_checkable
class NewsletterCapablePort(Protocol):
    """Optional capability: broadcast a newsletter issue to one recipient."""

    def send_newsletter(self, params: NewsletterEmailParams) -> EmailResult:
        ...
