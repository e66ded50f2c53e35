"""
Postmark adapter.

JSON POST to https://api.postmarkapp.com/email authenticated with the
``X-Postmark-Server-Token`` header; message id is ``MessageID``.
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
    PostmarkConfig,
    WelcomeEmailParams,
)
from optin.components.email.templates import (
    build_confirmation_template,
    build_newsletter_template,
    build_welcome_template,
    confirmation_subject,
    welcome_subject,
)


class PostmarkProvider:
    name = "postmark"
    api_url = "https://api.postmarkapp.com/email"

    def __init__(self, config: PostmarkConfig, client: httpx.Client | None = None) -> None:
        self.config = config
        self._client = client or new_http_client()

    def validate_config(self) -> bool:
        return bool(self.config.server_token and self.config.from_email)

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
                "Accept": "application/json",
                "Content-Type": "application/json",
                "X-Postmark-Server-Token": self.config.server_token or "",
            },
            json={
                "From": self.config.from_email,
                "To": to,
                "Subject": subject,
                "HtmlBody": html,
            },
        )
        body = read_json(response)
        ensure_success(response, body.get("Message"))
        return EmailResult.sent(self.name, body.get("MessageID"))
