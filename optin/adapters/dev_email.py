"""
Dev email provider.

Logs emails instead of sending them. Selected with ``EMAIL_PROVIDER=dev``
for local development, and used by the API tests.

Key behaviors:
- Logs recipient/subject/body preview through ``logging``
- Keeps every message in memory for test assertions
- Reports success with a ``dev-`` message id
- Can be switched to fail every send (exercises rollback paths)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from threading import Lock
from uuid import uuid4

from optin.components.email.models import (
    ConfirmationEmailParams,
    EmailResult,
    NewsletterEmailParams,
    WelcomeEmailParams,
)
from optin.components.email.templates import (
    build_confirmation_template,
    build_newsletter_template,
    build_welcome_template,
    confirmation_subject,
    welcome_subject,
)

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    kind: str  # "confirmation" | "welcome" | "newsletter"
    recipient: str
    subject: str
    body_html: str
    link: str | None
    logged_at: datetime


@dataclass
class DevEmailProvider:
    """Email provider that logs instead of sending."""

    name: str = "dev"
    sent_emails: list[SentEmail] = field(default_factory=list)

    # Configuration
    fail_sends: bool = False
    log_level: int = logging.INFO
    body_preview_length: int = 100

    _lock: Lock = field(default_factory=Lock, repr=False)

    def validate_config(self) -> bool:
        return True

    def send_confirmation_email(self, params: ConfirmationEmailParams) -> EmailResult:
        return self._record(
            "confirmation",
            params.to,
            confirmation_subject(params.site_name),
            build_confirmation_template(params),
            params.confirmation_url,
        )

    def send_welcome_email(self, params: WelcomeEmailParams) -> EmailResult:
        return self._record(
            "welcome",
            params.to,
            welcome_subject(params.site_name),
            build_welcome_template(params),
            params.unsubscribe_url,
        )

    def send_newsletter(self, params: NewsletterEmailParams) -> EmailResult:
        return self._record(
            "newsletter",
            params.to,
            params.subject,
            build_newsletter_template(params),
            params.unsubscribe_url,
        )

    def _record(
        self,
        kind: str,
        recipient: str,
        subject: str,
        body_html: str,
        link: str | None,
    ) -> EmailResult:
        if self.fail_sends:
            logger.warning("EMAIL (dev): simulated failure To=%s Subject=%s", recipient, subject)
            return EmailResult.failed(self.name, "Simulated send failure")

        message_id = f"dev-{uuid4().hex[:12]}"
        with self._lock:
            self.sent_emails.append(
                SentEmail(
                    id=message_id,
                    kind=kind,
                    recipient=recipient,
                    subject=subject,
                    body_html=body_html,
                    link=link,
                    logged_at=datetime.now(UTC),
                )
            )

        preview = body_html.strip()[: self.body_preview_length]
        logger.log(
            self.log_level,
            "EMAIL (dev): To=%s, Subject=%s, Link=%s, Body=%s..., MessageID=%s",
            recipient,
            subject,
            link,
            preview,
            message_id,
        )
        return EmailResult.sent(self.name, message_id)

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        return [e for e in self.sent_emails if e.recipient == recipient]

    def get_emails_of_kind(self, kind: str) -> list[SentEmail]:
        return [e for e in self.sent_emails if e.kind == kind]

    def clear(self) -> None:
        self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        return len(self.sent_emails)
