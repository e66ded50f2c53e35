"""
Subscriber store accessor.

Read/write/scan helpers over the key-value namespace. This is the only
module that knows the key layout:

- ``subscriber:<email>``   JSON subscriber record
- ``subscriber_count``     best-effort integer counter
- ``confirmed:<token>``    spent confirmation token → email (TTL)
- ``unsubscribed:<token>`` spent unsubscribe token → email (TTL)

Token lookups are linear scans over every ``subscriber:`` key; the store
has no secondary index.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator

from optin.components.subscribers.models import Subscriber, SubscriberStatus
from optin.components.subscribers.ports import KVStorePort

logger = logging.getLogger(__name__)

SUBSCRIBER_PREFIX = "subscriber:"
COUNT_KEY = "subscriber_count"
SPENT_CONFIRMATION_PREFIX = "confirmed:"
SPENT_UNSUBSCRIBE_PREFIX = "unsubscribed:"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def subscriber_key(email: str) -> str:
    return f"{SUBSCRIBER_PREFIX}{normalize_email(email)}"


class SubscriberStore:
    """Subscriber records and the aggregate count over a KVStorePort."""

    def __init__(self, kv: KVStorePort) -> None:
        self.kv = kv

    # --- Records ---

    def get_subscriber(self, email: str) -> Subscriber | None:
        return self._load(subscriber_key(email))

    def put_subscriber(self, subscriber: Subscriber) -> None:
        self.kv.put(subscriber_key(subscriber.email), json.dumps(subscriber.to_record()))

    def delete_subscriber(self, email: str) -> None:
        self.kv.delete(subscriber_key(email))

    def iter_subscribers(self) -> Iterator[Subscriber]:
        """Every readable subscriber record; malformed records are skipped."""
        for key in self.kv.list_keys(SUBSCRIBER_PREFIX):
            subscriber = self._load(key)
            if subscriber is not None:
                yield subscriber

    def find_by_confirmation_token(self, token: str) -> Subscriber | None:
        if not token:
            return None
        for subscriber in self.iter_subscribers():
            if subscriber.confirmation_token == token:
                return subscriber
        return None

    def find_by_unsubscribe_token(self, token: str) -> Subscriber | None:
        if not token:
            return None
        for subscriber in self.iter_subscribers():
            if subscriber.unsubscribe_token == token:
                return subscriber
        return None

    def list_active(self) -> list[Subscriber]:
        return [s for s in self.iter_subscribers() if s.status == SubscriberStatus.ACTIVE]

    # --- Count ---

    def get_count(self) -> int:
        raw = self.kv.get(COUNT_KEY)
        if raw is None:
            return 0
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring non-integer subscriber count %r", raw)
            return 0

    def increment_count(self, delta: int = 1) -> int:
        """Read-modify-write; concurrent writers may lose updates. Floors at 0."""
        count = max(0, self.get_count() + delta)
        self.kv.put(COUNT_KEY, str(count))
        return count

    # --- Spent tokens ---

    def remember_confirmation_token(self, token: str, email: str, ttl_seconds: int) -> None:
        self.kv.put(
            f"{SPENT_CONFIRMATION_PREFIX}{token}", normalize_email(email), ttl_seconds=ttl_seconds
        )

    def email_for_spent_confirmation_token(self, token: str) -> str | None:
        return self.kv.get(f"{SPENT_CONFIRMATION_PREFIX}{token}") if token else None

    def remember_unsubscribe_token(self, token: str, email: str, ttl_seconds: int) -> None:
        self.kv.put(
            f"{SPENT_UNSUBSCRIBE_PREFIX}{token}", normalize_email(email), ttl_seconds=ttl_seconds
        )

    def email_for_spent_unsubscribe_token(self, token: str) -> str | None:
        return self.kv.get(f"{SPENT_UNSUBSCRIBE_PREFIX}{token}") if token else None

    # --- Internal ---

    def _load(self, key: str) -> Subscriber | None:
        record = self.kv.get_json(key)
        if not isinstance(record, dict):
            return None
        try:
            return Subscriber.from_record(record)
        except (KeyError, ValueError, TypeError):
            logger.warning("Skipping malformed subscriber record at %s", key)
            return None
