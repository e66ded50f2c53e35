"""
SendGrid adapter.

v3 mail/send JSON POST with a bearer API key. A successful send answers
202 with an empty body; the message id is in the ``X-Message-Id`` header.
"""

from __future__ import annotations

from typing import Any

import httpx

from optin.components.email.delivery import (
    capture_failures,
    ensure_success,
    new_http_client,
    read_json,
)
from optin.components.email.models import (
    ConfirmationEmailParams,
    EmailResult,
    NewsletterEmailParams,
    SendGridConfig,
    WelcomeEmailParams,
)
from optin.components.email.templates import (
    build_confirmation_template,
    build_newsletter_template,
    build_welcome_template,
    confirmation_subject,
    welcome_subject,
)


def _first_error(body: dict[str, Any]) -> str | None:
    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        message = errors[0].get("message")
        return str(message) if message else None
    return None


class SendGridProvider:
    name = "sendgrid"
    api_url = "https://api.sendgrid.com/v3/mail/send"

    def __init__(self, config: SendGridConfig, client: httpx.Client | None = None) -> None:
        self.config = config
        self._client = client or new_http_client()

    def validate_config(self) -> bool:
        return bool(self.config.api_key and self.config.from_email)

    @capture_failures
    def send_confirmation_email(self, params: ConfirmationEmailParams) -> EmailResult:
        return self._send(
            params.to,
            confirmation_subject(params.site_name),
            build_confirmation_template(params),
        )

    @capture_failures
    def send_welcome_email(self, params: WelcomeEmailParams) -> EmailResult:
        return self._send(
            params.to,
            welcome_subject(params.site_name),
            build_welcome_template(params),
        )

    @capture_failures
    def send_newsletter(self, params: NewsletterEmailParams) -> EmailResult:
        return self._send(params.to, params.subject, build_newsletter_template(params))

    def _send(self, to: str, subject: str, html: str) -> EmailResult:
        response = self._client.post(
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "personalizations": [{"to": [{"email": to}], "subject": subject}],
                "from": {"email": self.config.from_email},
                "content": [{"type": "text/html", "value": html}],
            },
        )
        if not response.is_success:
            ensure_success(response, _first_error(read_json(response)))
        return EmailResult.sent(self.name, response.headers.get("x-message-id"))
