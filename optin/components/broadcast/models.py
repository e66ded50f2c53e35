"""
Broadcast component models.

A broadcast is prepared synchronously (validation, recipient snapshot) and
dispatched after the HTTP response as a background batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from optin.components.subscribers.models import ValidationError

# --- Input Models ---


@dataclass(frozen=True)
class BroadcastInput:
    subject: str
    content: str  # HTML, inserted verbatim


# --- Plan / Output Models ---


@dataclass(frozen=True)
class Recipient:
    email: str
    unsubscribe_token: str | None = None


@dataclass(frozen=True)
class BroadcastPlan:
    """Snapshot of the active list taken when the broadcast was requested."""

    subject: str
    content: str
    recipients: list[Recipient] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.recipients)


@dataclass(frozen=True)
class BroadcastOutput:
    success: bool
    plan: BroadcastPlan | None = None
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.plan.total if self.plan else 0


@dataclass(frozen=True)
class DeliveryOutcome:
    email: str
    success: bool
    message_id: str | None = None
    error: str | None = None


@dataclass
class BroadcastSummary:
    """Result of a dispatched batch. Logged, never shown to the admin."""

    total: int
    sent: int
    failed: int
    outcomes: list[DeliveryOutcome]


# --- Configuration ---


@dataclass(frozen=True)
class BroadcastPolicy:
    stagger_ms: int = 50  # Delay step between consecutive sends
    max_workers: int = 8


# --- Error Codes ---

MISSING_FIELD = "MISSING_FIELD"
NO_ACTIVE_SUBSCRIBERS = "NO_ACTIVE_SUBSCRIBERS"
STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
STORE_FAILURE = "STORE_FAILURE"
