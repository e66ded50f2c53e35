"""
Email provider adapters.

One module per third-party API; each class satisfies EmailProviderPort.
"""

from optin.components.email.providers.aws_ses import SESProvider
from optin.components.email.providers.mailgun import MailgunProvider
from optin.components.email.providers.postmark import PostmarkProvider
from optin.components.email.providers.resend import ResendProvider
from optin.components.email.providers.sendgrid import SendGridProvider

__all__ = [
    "MailgunProvider",
    "PostmarkProvider",
    "ResendProvider",
    "SESProvider",
    "SendGridProvider",
]
