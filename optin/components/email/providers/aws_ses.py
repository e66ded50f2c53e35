"""
AWS SES adapter.

Calls the SES query API (``Action=SendEmail``, version 2010-12-01) with a
hand-signed SigV4 request instead of an SDK. The message id is read from
the ``<MessageId>`` element of the XML response.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import UTC, datetime
from urllib.parse import urlencode

import httpx

from optin.components.email.delivery import (
    DeliveryError,
    capture_failures,
    new_http_client,
)
from optin.components.email.models import (
    ConfirmationEmailParams,
    EmailResult,
    NewsletterEmailParams,
    SESConfig,
    WelcomeEmailParams,
)
from optin.components.email.sigv4 import AWSCredentials, sign_request
from optin.components.email.templates import (
    build_confirmation_template,
    build_newsletter_template,
    build_welcome_template,
    confirmation_subject,
    welcome_subject,
)

SERVICE = "ses"
API_VERSION = "2010-12-01"
CHARSET = "UTF-8"

_MESSAGE_ID_RE = re.compile(r"<MessageId>(.*?)</MessageId>", re.DOTALL)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def build_send_email_payload(source: str, to: str, subject: str, html: str) -> str:
    """Form-encoded SendEmail body, fields in the order SES documents them."""
    return urlencode(
        [
            ("Action", "SendEmail"),
            ("Version", API_VERSION),
            ("Source", source),
            ("Destination.ToAddresses.member.1", to),
            ("Message.Subject.Data", subject),
            ("Message.Subject.Charset", CHARSET),
            ("Message.Body.Html.Data", html),
            ("Message.Body.Html.Charset", CHARSET),
        ]
    )


def parse_message_id(body: str) -> str:
    match = _MESSAGE_ID_RE.search(body)
    if not match:
        raise DeliveryError("Failed to parse MessageId from SES response")
    return match.group(1).strip()


class SESProvider:
    name = "aws-ses"

    def __init__(
        self,
        config: SESConfig,
        client: httpx.Client | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self._client = client or new_http_client()
        self._clock = clock

    def validate_config(self) -> bool:
        return bool(
            self.config.access_key_id
            and self.config.secret_access_key
            and self.config.region
            and self.config.from_email
        )

    @property
    def host(self) -> str:
        return f"email.{self.config.region}.amazonaws.com"

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

    def signed_headers(self, payload: str) -> dict[str, str]:
        """Headers (including Authorization) for a POST of ``payload``."""
        return sign_request(
            method="POST",
            host=self.host,
            path="/",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            payload=payload,
            credentials=AWSCredentials(
                access_key_id=self.config.access_key_id or "",
                secret_access_key=self.config.secret_access_key or "",
            ),
            region=self.config.region or "",
            service=SERVICE,
            now=self._clock(),
        )

    def _send(self, to: str, subject: str, html: str) -> EmailResult:
        payload = build_send_email_payload(self.config.from_email or "", to, subject, html)
        response = self._client.post(
            f"https://{self.host}/",
            headers=self.signed_headers(payload),
            content=payload.encode("utf-8"),
        )
        if not response.is_success:
            raise DeliveryError(
                f"SES API error: {response.status_code} {response.text}",
                response.status_code,
            )
        return EmailResult.sent(self.name, parse_message_id(response.text))
