"""
Subscriber component models.

Data models for the subscriber lifecycle state machine.

State machine (Subscriber):
- (none) → pending (subscribe)
- pending → active (confirm)
- pending → (deleted) (token expired)
- active → unsubscribed (unsubscribe link or admin)
- unsubscribed → pending (re-subscribe, fresh token pair)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# --- State Machine ---


class SubscriberStatus(Enum):
    PENDING = "pending"  # Awaiting email confirmation
    ACTIVE = "active"  # Confirmed, receives newsletters
    UNSUBSCRIBED = "unsubscribed"  # Opted out


VALID_TRANSITIONS: dict[SubscriberStatus, set[SubscriberStatus]] = {
    SubscriberStatus.PENDING: {SubscriberStatus.ACTIVE, SubscriberStatus.UNSUBSCRIBED},
    SubscriberStatus.ACTIVE: {SubscriberStatus.UNSUBSCRIBED},
    SubscriberStatus.UNSUBSCRIBED: {SubscriberStatus.PENDING},
}


def can_transition(from_status: SubscriberStatus, to_status: SubscriberStatus) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, set())


# --- Timestamps ---


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    utc = value.astimezone(UTC)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# --- Entity ---


@dataclass(frozen=True)
class Subscriber:
    """
    Subscriber record, keyed in the store by its normalized email.

    ``confirmation_token`` and ``token_expires_at`` are set together and
    cleared together. ``unsubscribe_token`` is present whenever the
    subscriber is active.
    """

    email: str
    subscribed_at: datetime
    status: SubscriberStatus = SubscriberStatus.PENDING
    confirmation_token: str | None = None
    token_expires_at: datetime | None = None
    confirmed_at: datetime | None = None
    unsubscribe_token: str | None = None
    user_agent: str | None = None
    ip: str | None = None

    def to_record(self) -> dict[str, Any]:
        """Stored JSON shape (camelCase keys, absent fields omitted)."""
        record: dict[str, Any] = {
            "email": self.email,
            "subscribedAt": format_timestamp(self.subscribed_at),
            "status": self.status.value,
        }
        optional = {
            "confirmationToken": self.confirmation_token,
            "tokenExpiresAt": (
                format_timestamp(self.token_expires_at) if self.token_expires_at else None
            ),
            "confirmedAt": format_timestamp(self.confirmed_at) if self.confirmed_at else None,
            "unsubscribeToken": self.unsubscribe_token,
            "userAgent": self.user_agent,
            "ip": self.ip,
        }
        record.update({k: v for k, v in optional.items() if v is not None})
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Subscriber:
        """
        Rebuild from the stored JSON shape.

        Raises KeyError/ValueError on records missing email, subscribedAt or
        a known status.
        """
        subscribed_at = parse_timestamp(record["subscribedAt"])
        if subscribed_at is None:
            raise ValueError("subscribedAt is empty")
        return cls(
            email=record["email"],
            subscribed_at=subscribed_at,
            status=SubscriberStatus(record["status"]),
            confirmation_token=record.get("confirmationToken"),
            token_expires_at=parse_timestamp(record.get("tokenExpiresAt")),
            confirmed_at=parse_timestamp(record.get("confirmedAt")),
            unsubscribe_token=record.get("unsubscribeToken"),
            user_agent=record.get("userAgent"),
            ip=record.get("ip"),
        )

    def with_changes(self, **changes: Any) -> Subscriber:
        return replace(self, **changes)


# --- Input Models ---


@dataclass(frozen=True)
class SubscribeInput:
    email: str
    user_agent: str | None = None
    ip: str | None = None


@dataclass(frozen=True)
class ConfirmInput:
    token: str


@dataclass(frozen=True)
class ResendConfirmationInput:
    email: str


@dataclass(frozen=True)
class UnsubscribeInput:
    token: str


@dataclass(frozen=True)
class ForceUnsubscribeInput:
    """Admin removal by email address."""

    email: str


@dataclass(frozen=True)
class BulkImportInput:
    """Admin CSV import; first column of each line is the address."""

    csv_text: str
    user_agent: str | None = None
    ip: str | None = None


@dataclass(frozen=True)
class ListSubscribersInput:
    page: int = 1
    limit: int = 20
    masked: bool = False


# --- Output Models ---


@dataclass(frozen=True)
class ValidationError:
    """Error detail."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ValidateEmailOutput:
    is_valid: bool
    normalized_email: str | None = None
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class SubscribeOutput:
    success: bool
    email: str | None = None
    resent: bool = False  # Pending subscriber, existing token re-sent
    reactivated: bool = False  # Previously unsubscribed, fresh cycle started
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class ConfirmOutput:
    success: bool
    email: str | None = None
    already_confirmed: bool = False  # Idempotent success
    welcome_sent: bool = False
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class ResendConfirmationOutput:
    success: bool
    email: str | None = None
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class UnsubscribeOutput:
    success: bool
    email: str | None = None
    already_unsubscribed: bool = False  # Idempotent success
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class BulkImportOutput:
    success: bool
    added: int = 0
    skipped: int = 0
    invalid: int = 0
    messages: list[str] = field(default_factory=list)  # First N problems only
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class SubscriberSummary:
    """Admin-facing view of a subscriber (no tokens)."""

    email: str
    subscribed_at: datetime
    status: SubscriberStatus
    confirmed_at: datetime | None = None
    token_expires_at: datetime | None = None


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next: bool
    has_previous: bool


@dataclass(frozen=True)
class ListSubscribersOutput:
    success: bool
    subscribers: list[SubscriberSummary] = field(default_factory=list)
    pagination: Pagination | None = None
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class CountOutput:
    success: bool
    count: int = 0
    errors: list[ValidationError] = field(default_factory=list)


# --- Configuration ---


@dataclass(frozen=True)
class SubscriberPolicy:
    """Lifecycle tunables (loaded from rules.yaml)."""

    confirmation_token_expiry_hours: int = 24
    bulk_import_error_limit: int = 10
    spent_token_ttl_days: int = 30
    list_default_limit: int = 20
    list_max_limit: int = 100


# --- Error Codes ---

INVALID_EMAIL = "INVALID_EMAIL"
MISSING_FIELD = "MISSING_FIELD"
MISSING_TOKEN = "MISSING_TOKEN"
INVALID_TOKEN = "INVALID_TOKEN"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
ALREADY_SUBSCRIBED = "ALREADY_SUBSCRIBED"
NO_PENDING_SUBSCRIPTION = "NO_PENDING_SUBSCRIPTION"
NOT_FOUND = "NOT_FOUND"
SEND_FAILED = "SEND_FAILED"
STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
STORE_FAILURE = "STORE_FAILURE"
