"""
Provider factory.

Maps a configuration string to a concrete adapter. The registry is static;
selecting a different provider is a configuration change, never a code
change.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx

from optin.components.email.models import (
    EmailProviderConfig,
    InvalidProviderConfigError,
    UnsupportedProviderError,
)
from optin.components.email.ports import EmailProviderPort
from optin.components.email.providers import (
    MailgunProvider,
    PostmarkProvider,
    ResendProvider,
    SendGridProvider,
    SESProvider,
)

# name -> (config section attribute, adapter class)
# "dev" is not registered here; optin.api.deps wires the logging adapter directly.
_REGISTRY: dict[str, tuple[str, Callable[..., Any]]] = {
    "resend": ("resend", ResendProvider),
    "aws-ses": ("aws_ses", SESProvider),
    "postmark": ("postmark", PostmarkProvider),
    "sendgrid": ("sendgrid", SendGridProvider),
    "mailgun": ("mailgun", MailgunProvider),
}


class EmailProviderFactory:
    @staticmethod
    def supported_providers() -> list[str]:
        return list(_REGISTRY)

    @staticmethod
    def create(
        provider: str,
        config: EmailProviderConfig,
        client: httpx.Client | None = None,
    ) -> EmailProviderPort:
        """
        Build and validate the adapter registered under ``provider``.

        Raises:
            UnsupportedProviderError: unknown provider name
            InvalidProviderConfigError: config section absent or incomplete
        """
        name = (provider or "").strip().lower()
        entry = _REGISTRY.get(name)
        if entry is None:
            raise UnsupportedProviderError(provider)

        section_name, adapter_cls = entry
        section = getattr(config, section_name)
        if section is None:
            raise InvalidProviderConfigError(name, "configuration missing")

        adapter: EmailProviderPort = adapter_cls(section, client=client)
        if not adapter.validate_config():
            raise InvalidProviderConfigError(name)
        return adapter
