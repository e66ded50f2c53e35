"""
Email component.

Provider-agnostic transactional email: five HTTP provider adapters behind
one port, a factory keyed on a configuration string, and a facade used by
the subscriber lifecycle.
"""

from optin.components.email.factory import EmailProviderFactory
from optin.components.email.models import (
    ConfirmationEmailParams,
    EmailConfigError,
    EmailProviderConfig,
    EmailResult,
    EmailServiceConfig,
    InvalidProviderConfigError,
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
from optin.components.email.service import (
    EmailService,
    create_provider,
    provider_config_from_env,
    service_config_from_env,
)

__all__ = [
    # Facade
    "EmailService",
    "EmailProviderFactory",
    "create_provider",
    "provider_config_from_env",
    "service_config_from_env",
    # Models
    "ConfirmationEmailParams",
    "WelcomeEmailParams",
    "NewsletterEmailParams",
    "EmailResult",
    "EmailProviderConfig",
    "EmailServiceConfig",
    "ResendConfig",
    "SESConfig",
    "PostmarkConfig",
    "SendGridConfig",
    "MailgunConfig",
    # Errors
    "EmailConfigError",
    "UnsupportedProviderError",
    "InvalidProviderConfigError",
    # Ports
    "EmailProviderPort",
    "NewsletterCapablePort",
]
