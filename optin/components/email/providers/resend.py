"""
Resend adapter.

JSON POST to https://api.resend.com/emails with a bearer API key; the
message id comes back as ``id``.
"""

from __future__ import annotations

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
    ResendConfig,
    WelcomeEmailParams,
)
from optin.components.email.templates import (
    build_confirmation_template,
    build_newsletter_template,
    build_welcome_template,
    confirmation_subject,
    welcome_subject,
)


class ResendProvider:
    name = "resend"
    api_url = "https://api.resend.com/emails"

    def __init__(self, config: ResendConfig, client: httpx.Client | None = None) -> None:
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
                "from": self.config.from_email,
                "to": to,
                "subject": subject,
                "html": html,
            },
        )
        body = read_json(response)
        ensure_success(response, body.get("message"))
        return EmailResult.sent(self.name, body.get("id"))
