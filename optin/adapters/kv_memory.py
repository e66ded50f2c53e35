"""In-memory key-value store adapter.

Implements KVStorePort for tests and single-process development
(``NEWSLETTER_KV=memory``). Contents are lost on restart.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from threading import Lock
from typing import Any

from optin.adapters.clock import SystemClock
from optin.components.subscribers.ports import ClockPort


class InMemoryKVStore:
    """Dict-backed namespace with lazy TTL expiry."""

    def __init__(self, clock: ClockPort | None = None) -> None:
        self._clock = clock or SystemClock()
        self._entries: dict[str, tuple[str, datetime | None]] = {}
        self._lock = Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at is not None and expires_at <= self._clock.now_utc():
                del self._entries[key]
                return None
            return value

    def get_json(self, key: str) -> Any | None:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = (
            self._clock.now_utc() + timedelta(seconds=ttl_seconds)
            if ttl_seconds is not None
            else None
        )
        with self._lock:
            self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def list_keys(self, prefix: str) -> list[str]:
        now = self._clock.now_utc()
        with self._lock:
            return sorted(
                key
                for key, (_, expires_at) in self._entries.items()
                if key.startswith(prefix) and (expires_at is None or expires_at > now)
            )

    def clear(self) -> None:
        """Clear everything - useful for testing."""
        with self._lock:
            self._entries.clear()
