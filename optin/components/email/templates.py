"""
HTML bodies and subject lines shared by every provider adapter.

Plain string interpolation; site names and URLs are HTML-escaped, newsletter
content is trusted admin HTML and inserted verbatim.
"""

from __future__ import annotations

from html import escape

from optin.components.email.models import (
    ConfirmationEmailParams,
    NewsletterEmailParams,
    WelcomeEmailParams,
)

DEFAULT_SITE_NAME = "our newsletter"

_BODY_STYLE = (
    "font-family: Arial, sans-serif; line-height: 1.6; max-width: 600px; "
    "margin: 0 auto; padding: 20px;"
)


def _site(site_name: str | None) -> str:
    return escape(site_name or DEFAULT_SITE_NAME)


def _hours(hours: int) -> str:
    return "1 hour" if hours == 1 else f"{hours} hours"


def confirmation_subject(site_name: str | None = None) -> str:
    return f"Confirm your subscription to {site_name or DEFAULT_SITE_NAME}"


def welcome_subject(site_name: str | None = None) -> str:
    return f"Welcome to {site_name or DEFAULT_SITE_NAME}!"


def build_confirmation_template(params: ConfirmationEmailParams) -> str:
    url = escape(params.confirmation_url, quote=True)
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Confirm Your Subscription</title>
</head>
<body style="{_BODY_STYLE}">
  <div style="text-align: center; margin-bottom: 30px;">
    <h1 style="color: #333; margin-bottom: 10px;">Confirm Your Subscription</h1>
    <p style="color: #666; font-size: 16px;">Thanks for subscribing to {_site(params.site_name)}!</p>
  </div>
  <div style="background: #f8f9fa; padding: 20px; border-radius: 8px; margin-bottom: 30px;">
    <p style="margin: 0; color: #333;">
      To complete your subscription and start receiving our newsletter, please click the button below:
    </p>
  </div>
  <div style="text-align: center; margin: 30px 0;">
    <a href="{url}"
       style="display: inline-block; background: #007bff; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px; font-weight: bold;">
      Confirm Subscription
    </a>
  </div>
  <div style="border-top: 1px solid #eee; padding-top: 20px; margin-top: 30px;">
    <p style="color: #666; font-size: 14px; margin: 0;">
      If you didn't subscribe to this newsletter, you can safely ignore this email.
    </p>
    <p style="color: #666; font-size: 14px; margin: 5px 0 0 0;">
      This confirmation link will expire in {_hours(params.expiry_hours)}.
    </p>
  </div>
</body>
</html>
"""


def _unsubscribe_footer(unsubscribe_url: str | None) -> str:
    if not unsubscribe_url:
        return ""
    url = escape(unsubscribe_url, quote=True)
    return f"""
    <p style="color: #999; font-size: 12px; margin-top: 20px; text-align: center;">
      You can <a href="{url}" style="color: #999;">unsubscribe</a> at any time.
    </p>"""


def build_welcome_template(params: WelcomeEmailParams) -> str:
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Welcome!</title>
</head>
<body style="{_BODY_STYLE}">
  <div style="text-align: center; margin-bottom: 30px;">
    <h1 style="color: #333; margin-bottom: 10px;">Welcome to {_site(params.site_name)}!</h1>
    <p style="color: #666; font-size: 16px;">Your subscription has been confirmed successfully.</p>
  </div>
  <div style="background: #d4edda; padding: 20px; border-radius: 8px; margin-bottom: 30px; border-left: 4px solid #28a745;">
    <p style="margin: 0; color: #155724;">
      Thank you for confirming your email address. You're now subscribed and will receive our latest updates!
    </p>
  </div>
  <div style="border-top: 1px solid #eee; padding-top: 20px; margin-top: 30px;">
    <p style="color: #666; font-size: 14px; margin: 0;">
      Thanks for joining us! We're excited to share great content with you.
    </p>{_unsubscribe_footer(params.unsubscribe_url)}
  </div>
</body>
</html>
"""


def build_newsletter_template(params: NewsletterEmailParams) -> str:
    footer = ""
    if params.unsubscribe_url:
        footer = f"""
  <div style="border-top: 1px solid #eee; padding-top: 20px; margin-top: 30px;">{_unsubscribe_footer(params.unsubscribe_url)}
  </div>"""
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escape(params.subject)}</title>
</head>
<body style="{_BODY_STYLE}">
  <div style="padding: 20px;">
    {params.content}
  </div>{footer}
</body>
</html>
"""
