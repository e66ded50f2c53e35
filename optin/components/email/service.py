"""
Email service facade.

Resolves configuration into one provider adapter and exposes
lifecycle-oriented sends (confirmation, welcome, newsletter) so callers never
deal with provider identity or URL building.

Key behaviors:
- Fail fast: an unknown or incomplete provider raises at construction
- Confirmation link: ``{site_url}/confirm?token=...``
- Unsubscribe link: ``{site_url}/unsubscribe?token=...`` (only when a token is known)
- Missing newsletter capability is a failed EmailResult, not an exception
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from urllib.parse import quote

import httpx

from optin.components.email.factory import EmailProviderFactory
from optin.components.email.models import (
    ConfirmationEmailParams,
    EmailProviderConfig,
    EmailResult,
    EmailServiceConfig,
    MailgunConfig,
    NewsletterEmailParams,
    PostmarkConfig,
    ResendConfig,
    SendGridConfig,
    SESConfig,
    UnsupportedProviderError,
    WelcomeEmailParams,
)
from optin.components.email.ports import EmailProviderPort, NewsletterCapablePort

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "resend"
DEFAULT_SITE_URL = "http://localhost:4321"
DEFAULT_SITE_NAME = "Newsletter"

CONFIRM_PATH = "/confirm"
UNSUBSCRIBE_PATH = "/unsubscribe"


def provider_config_from_env(name: str, env: Mapping[str, str | None]) -> EmailProviderConfig:
    """
    Pick the credential set for ``name`` out of environment-style settings.

    Only the selected provider's section is populated.
    """
    from_email = env.get("FROM_EMAIL")
    match name.strip().lower():
        case "resend":
            return EmailProviderConfig(
                resend=ResendConfig(api_key=env.get("RESEND_API_KEY"), from_email=from_email)
            )
        case "aws-ses":
            return EmailProviderConfig(
                aws_ses=SESConfig(
                    access_key_id=env.get("AWS_ACCESS_KEY_ID"),
                    secret_access_key=env.get("AWS_SECRET_ACCESS_KEY"),
                    region=env.get("AWS_REGION"),
                    from_email=from_email,
                )
            )
        case "postmark":
            return EmailProviderConfig(
                postmark=PostmarkConfig(
                    server_token=env.get("POSTMARK_SERVER_TOKEN"), from_email=from_email
                )
            )
        case "sendgrid":
            return EmailProviderConfig(
                sendgrid=SendGridConfig(api_key=env.get("SENDGRID_API_KEY"), from_email=from_email)
            )
        case "mailgun":
            return EmailProviderConfig(
                mailgun=MailgunConfig(
                    api_key=env.get("MAILGUN_API_KEY"),
                    domain=env.get("MAILGUN_DOMAIN"),
                    from_email=from_email,
                )
            )
        case _:
            raise UnsupportedProviderError(name)


def create_provider(
    name: str,
    raw_config: Mapping[str, str | None],
    client: httpx.Client | None = None,
) -> EmailProviderPort:
    """Build a validated provider from environment-style settings."""
    return EmailProviderFactory.create(name, provider_config_from_env(name, raw_config), client)


def service_config_from_env(env: Mapping[str, str | None]) -> EmailServiceConfig:
    name = env.get("EMAIL_PROVIDER") or DEFAULT_PROVIDER
    return EmailServiceConfig(
        provider=name,
        providers=provider_config_from_env(name, env),
        site_url=env.get("SITE_URL") or DEFAULT_SITE_URL,
        site_name=env.get("SITE_NAME") or DEFAULT_SITE_NAME,
    )


class EmailService:
    """Provider-agnostic sends for the subscriber lifecycle."""

    def __init__(
        self,
        config: EmailServiceConfig,
        provider: EmailProviderPort | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.site_url = config.site_url.rstrip("/")
        self.site_name = config.site_name
        self.confirmation_expiry_hours = config.confirmation_expiry_hours
        self.provider = provider or EmailProviderFactory.create(
            config.provider, config.providers, client
        )

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str | None],
        client: httpx.Client | None = None,
    ) -> EmailService:
        return cls(service_config_from_env(env), client=client)

    @property
    def provider_name(self) -> str:
        return self.provider.name

    def confirmation_url(self, token: str) -> str:
        return f"{self.site_url}{CONFIRM_PATH}?token={quote(token, safe='')}"

    def unsubscribe_url(self, token: str) -> str:
        return f"{self.site_url}{UNSUBSCRIBE_PATH}?token={quote(token, safe='')}"

    def send_confirmation_email(self, email: str, token: str) -> EmailResult:
        return self.provider.send_confirmation_email(
            ConfirmationEmailParams(
                to=email,
                confirmation_url=self.confirmation_url(token),
                site_name=self.site_name,
                expiry_hours=self.confirmation_expiry_hours,
            )
        )

    def send_welcome_email(self, email: str, unsubscribe_token: str | None = None) -> EmailResult:
        return self.provider.send_welcome_email(
            WelcomeEmailParams(
                to=email,
                site_name=self.site_name,
                unsubscribe_url=self.unsubscribe_url(unsubscribe_token) if unsubscribe_token else None,
            )
        )

    def send_newsletter(
        self,
        email: str,
        subject: str,
        content: str,
        unsubscribe_token: str | None = None,
    ) -> EmailResult:
        if not isinstance(self.provider, NewsletterCapablePort):
            logger.error("Provider %s cannot send newsletters", self.provider_name)
            return EmailResult.failed(
                self.provider_name,
                f"Provider {self.provider_name} does not support newsletters",
            )
        return self.provider.send_newsletter(
            NewsletterEmailParams(
                to=email,
                subject=subject,
                content=content,
                unsubscribe_url=self.unsubscribe_url(unsubscribe_token) if unsubscribe_token else None,
                site_name=self.site_name,
            )
        )
