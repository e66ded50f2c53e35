"""
Email component models.

Send parameters, per-provider credential sets, the uniform send result and
the configuration errors raised while resolving a provider.

Every provider reports outcomes through EmailResult; nothing on the send
path raises to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass

# --- Send Parameters ---


@dataclass(frozen=True)
class ConfirmationEmailParams:
    """Double opt-in confirmation email."""

    to: str
    confirmation_url: str
    site_name: str | None = None
    expiry_hours: int = 24


@dataclass(frozen=True)
class WelcomeEmailParams:
    """Welcome email sent after confirmation."""

    to: str
    site_name: str | None = None
    unsubscribe_url: str | None = None


@dataclass(frozen=True)
class NewsletterEmailParams:
    """One newsletter issue addressed to one subscriber."""

    to: str
    subject: str
    content: str  # HTML fragment, inserted as-is
    unsubscribe_url: str | None = None
    site_name: str | None = None


# --- Result ---


@dataclass(frozen=True)
class EmailResult:
    """Outcome of a single send attempt."""

    success: bool
    provider: str
    message_id: str | None = None
    error: str | None = None

    @classmethod
    def sent(cls, provider: str, message_id: str | None = None) -> EmailResult:
        return cls(success=True, provider=provider, message_id=message_id)

    @classmethod
    def failed(cls, provider: str, error: str) -> EmailResult:
        return cls(success=False, provider=provider, error=error)


# --- Provider Credentials ---


@dataclass(frozen=True)
class ResendConfig:
    api_key: str | None
    from_email: str | None


@dataclass(frozen=True)
class SESConfig:
    access_key_id: str | None
    secret_access_key: str | None
    region: str | None
    from_email: str | None


@dataclass(frozen=True)
class PostmarkConfig:
    server_token: str | None
    from_email: str | None


@dataclass(frozen=True)
class SendGridConfig:
    api_key: str | None
    from_email: str | None


@dataclass(frozen=True)
class MailgunConfig:
    api_key: str | None
    domain: str | None
    from_email: str | None


@dataclass(frozen=True)
class EmailProviderConfig:
    """
    Credential bag handed to the provider factory.

    Only the section for the selected provider needs to be filled in.
    """

    resend: ResendConfig | None = None
    aws_ses: SESConfig | None = None
    postmark: PostmarkConfig | None = None
    sendgrid: SendGridConfig | None = None
    mailgun: MailgunConfig | None = None


@dataclass(frozen=True)
class EmailServiceConfig:
    """Everything the email facade needs: selector, credentials, site identity."""

    provider: str
    providers: EmailProviderConfig
    site_url: str = "http://localhost:4321"
    site_name: str = "Newsletter"
    confirmation_expiry_hours: int = 24


# --- Error Types ---


class EmailConfigError(Exception):
    """Base error for provider resolution failures."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(message)


class UnsupportedProviderError(EmailConfigError):
    """No adapter is registered under the requested name."""

    def __init__(self, provider: str) -> None:
        super().__init__(provider, f"Unsupported email provider: {provider}")


class InvalidProviderConfigError(EmailConfigError):
    """The selected provider is missing credentials or fields."""

    def __init__(self, provider: str, reason: str = "required fields are missing") -> None:
        self.reason = reason
        super().__init__(provider, f"Invalid configuration for {provider} email provider: {reason}")
