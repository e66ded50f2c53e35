"""
SQLite key-value store adapter.

Implements KVStorePort on a single ``kv`` table. Expiry is stored as a
unix timestamp and enforced on read; expired rows are purged lazily.
Every sqlite3 failure surfaces as KVStoreError.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from optin.adapters.clock import SystemClock
from optin.components.subscribers.ports import ClockPort, KVStoreError

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    expires_at REAL
);
CREATE INDEX IF NOT EXISTS idx_kv_expires_at ON kv (expires_at);
"""


class SQLiteKVStore:
    """SQLite implementation of KVStorePort."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        clock: ClockPort | None = None,
    ):
        self.db_path = db_path
        self._external_conn = connection
        self._clock = clock or SystemClock()
        if connection is None and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._execute_script(SCHEMA)

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn
        return sqlite3.connect(self.db_path, timeout=10.0)

    def _should_close(self) -> bool:
        return self._external_conn is None

    def _now(self) -> float:
        return self._clock.now_utc().timestamp()

    def _execute_script(self, script: str) -> None:
        conn = self._get_conn()
        try:
            conn.executescript(script)
            conn.commit()
        except sqlite3.Error as e:
            raise KVStoreError(f"Failed to initialise {self.db_path}: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def get(self, key: str) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT value, expires_at FROM kv WHERE key = ?", (key,)
            ).fetchone()
            if row is None:
                return None
            value, expires_at = row
            if expires_at is not None and expires_at <= self._now():
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                conn.commit()
                return None
            return str(value)
        except sqlite3.Error as e:
            raise KVStoreError(f"get {key!r} failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def get_json(self, key: str) -> Any | None:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Value at %s is not valid JSON", key)
            return None

    def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        expires_at = self._now() + ttl_seconds if ttl_seconds is not None else None
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO kv (key, value, expires_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    expires_at = excluded.expires_at
                """,
                (key, value, expires_at),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise KVStoreError(f"put {key!r} failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def delete(self, key: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise KVStoreError(f"delete {key!r} failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def list_keys(self, prefix: str) -> list[str]:
        conn = self._get_conn()
        try:
            rows = conn.execute(
                """
                SELECT key FROM kv
                WHERE substr(key, 1, ?) = ?
                  AND (expires_at IS NULL OR expires_at > ?)
                ORDER BY key
                """,
                (len(prefix), prefix, self._now()),
            ).fetchall()
            return [row[0] for row in rows]
        except sqlite3.Error as e:
            raise KVStoreError(f"list {prefix!r} failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()

    def purge_expired(self) -> int:
        """Delete expired rows. Returns count deleted."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM kv WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (self._now(),),
            )
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as e:
            raise KVStoreError(f"purge failed: {e}") from e
        finally:
            if self._should_close():
                conn.close()
