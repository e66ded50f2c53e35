"""
Mailgun adapter.

Form-encoded POST to ``/v3/<domain>/messages`` with HTTP basic auth
(user ``api``); message id is ``id``.
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
    MailgunConfig,
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


class MailgunProvider:
    name = "mailgun"
    api_base = "https://api.mailgun.net/v3"

    def __init__(self, config: MailgunConfig, client: httpx.Client | None = None) -> None:
        self.config = config
        self._client = client or new_http_client()

    def validate_config(self) -> bool:
        return bool(self.config.api_key and self.config.domain and self.config.from_email)

    @property
    def messages_url(self) -> str:
        return f"{self.api_base}/{self.config.domain}/messages"

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
            self.messages_url,
            auth=("api", self.config.api_key or ""),
            data={
                "from": self.config.from_email or "",
                "to": to,
                "subject": subject,
                "html": html,
            },
        )
        body = read_json(response)
        ensure_success(response, body.get("message"))
        return EmailResult.sent(self.name, body.get("id"))
