"""
Shared send plumbing for provider adapters.

Adapters are plain classes, not a hierarchy; what they have in common lives
here: the HTTP client factory, JSON body parsing, and the decorator that
turns any send-path failure into a failed EmailResult.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

import httpx

from optin.components.email.models import EmailResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class DeliveryError(Exception):
    """Provider rejected the request or answered with something unusable."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class _NamedProvider(Protocol):
    name: str


P = TypeVar("P", bound=_NamedProvider)
A = TypeVar("A")


def capture_failures(
    method: Callable[[P, A], EmailResult],
) -> Callable[[P, A], EmailResult]:
    """
    Wrap a send method so it never raises.

    DeliveryError and transport errors become ``EmailResult.failed`` tagged
    with the provider name; anything else is logged with a traceback and
    reported the same way.
    """

    @functools.wraps(method)
    def wrapper(self: P, params: A) -> EmailResult:
        try:
            return method(self, params)
        except DeliveryError as e:
            logger.warning("%s rejected send: %s", self.name, e)
            return EmailResult.failed(self.name, str(e))
        except httpx.HTTPError as e:
            logger.warning("%s transport error: %s", self.name, e)
            return EmailResult.failed(self.name, f"Transport error: {e}")
        except Exception as e:
            logger.exception("%s send failed unexpectedly", self.name)
            return EmailResult.failed(self.name, str(e) or "Unknown error")

    return wrapper


def new_http_client(timeout: float = DEFAULT_TIMEOUT_SECONDS) -> httpx.Client:
    """HTTP client used by adapters that were not handed one."""
    return httpx.Client(timeout=timeout)


def read_json(response: httpx.Response) -> dict[str, Any]:
    """Parse a JSON object body; empty or non-object bodies yield {}."""
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def ensure_success(response: httpx.Response, error_message: str | None) -> None:
    """Raise DeliveryError for any non-2xx response."""
    if response.is_success:
        return
    detail = error_message or "Failed to send email"
    raise DeliveryError(f"{detail} (HTTP {response.status_code})", response.status_code)
