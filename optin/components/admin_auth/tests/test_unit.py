"""
Admin auth component unit tests.

Tests for password login, session verification and logout.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest

from optin.adapters.clock import FrozenClock
from optin.adapters.kv_memory import InMemoryKVStore
from optin.components.admin_auth import (
    LoginInput,
    LogoutInput,
    VerifySessionInput,
    check_password,
    new_session_token,
    run,
    run_login,
    run_logout,
    run_verify_session,
)
from optin.components.subscribers.ports import KVStoreError

START = datetime(2026, 5, 4, 8, 0, tzinfo=UTC)


class ExplodingKV(InMemoryKVStore):
    def put(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        raise KVStoreError("disk full")

    def get_json(self, key: str):  # type: ignore[override]
        raise KVStoreError("disk full")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(START)


@pytest.fixture
def kv(clock: FrozenClock) -> InMemoryKVStore:
    return InMemoryKVStore(clock=clock)


def login(kv, clock, password: str = "hunter2", **kwargs):
    return run_login(
        LoginInput(password=password, ip="198.51.100.7", user_agent="pytest"),
        kv,
        clock,
        "hunter2",
        **kwargs,
    )


def test_session_token_is_64_hex_chars() -> None:
    token = new_session_token()
    assert len(token) == 64
    int(token, 16)
    assert new_session_token() != token


def test_check_password() -> None:
    assert check_password("hunter2", "hunter2") is True
    assert check_password("hunter3", "hunter2") is False
    assert check_password("", "hunter2") is False


def test_login_creates_session_record(kv: InMemoryKVStore, clock: FrozenClock) -> None:
    out = login(kv, clock, token_factory=lambda: "abc123")

    assert out.success is True
    assert out.session is not None
    assert out.session.token == "abc123"
    assert out.session.expires_at == START + timedelta(hours=24)
    record = json.loads(kv.get("session:abc123") or "{}")
    assert record == {
        "token": "abc123",
        "createdAt": "2026-05-04T08:00:00.000Z",
        "expiresAt": "2026-05-05T08:00:00.000Z",
        "ip": "198.51.100.7",
        "userAgent": "pytest",
    }


def test_login_requires_password(kv: InMemoryKVStore, clock: FrozenClock) -> None:
    out = login(kv, clock, password="")
    assert out.success is False
    assert out.code == "PASSWORD_REQUIRED"


def test_login_without_configured_password(kv: InMemoryKVStore, clock: FrozenClock) -> None:
    out = run_login(LoginInput(password="anything"), kv, clock, None)
    assert out.code == "AUTH_UNAVAILABLE"


def test_login_wrong_password(kv: InMemoryKVStore, clock: FrozenClock) -> None:
    out = login(kv, clock, password="wrong")
    assert out.code == "INVALID_PASSWORD"
    assert kv.list_keys("session:") == []


def test_login_without_store(clock: FrozenClock) -> None:
    out = login(None, clock)
    assert out.code == "STORE_UNAVAILABLE"


def test_login_store_failure(clock: FrozenClock) -> None:
    out = login(ExplodingKV(clock=clock), clock)
    assert out.success is False
    assert out.code == "STORE_FAILURE"


def test_verify_valid_session(kv: InMemoryKVStore, clock: FrozenClock) -> None:
    token = login(kv, clock).session.token
    clock.advance(3600)

    out = run_verify_session(VerifySessionInput(token), kv, clock)

    assert out.success is True
    assert out.session is not None and out.session.token == token


def test_verify_unknown_or_missing_token(kv: InMemoryKVStore, clock: FrozenClock) -> None:
    assert run_verify_session(VerifySessionInput("nope"), kv, clock).code == "SESSION_NOT_FOUND"
    assert run_verify_session(VerifySessionInput(None), kv, clock).code == "SESSION_NOT_FOUND"


def test_expired_session_is_deleted(clock: FrozenClock) -> None:
    # Store clock stays put, so only the recorded expiry applies
    kv = InMemoryKVStore(clock=FrozenClock(START))
    token = login(kv, clock).session.token
    clock.advance(24 * 3600 + 1)

    out = run_verify_session(VerifySessionInput(token), kv, clock)

    assert out.code == "SESSION_EXPIRED"
    assert kv.get(f"session:{token}") is None


def test_malformed_session_is_rejected(kv: InMemoryKVStore, clock: FrozenClock) -> None:
    kv.put("session:bad", json.dumps({"token": "bad"}))
    out = run_verify_session(VerifySessionInput("bad"), kv, clock)
    assert out.code == "SESSION_NOT_FOUND"
    assert kv.get("session:bad") is None


def test_verify_store_failure(clock: FrozenClock) -> None:
    out = run_verify_session(VerifySessionInput("x"), ExplodingKV(clock=clock), clock)
    assert out.success is False
    assert out.code == "STORE_FAILURE"


def test_logout_deletes_session(kv: InMemoryKVStore, clock: FrozenClock) -> None:
    token = login(kv, clock).session.token

    out = run_logout(LogoutInput(token), kv)

    assert out.success is True
    assert run_verify_session(VerifySessionInput(token), kv, clock).success is False


def test_logout_without_token_succeeds(kv: InMemoryKVStore) -> None:
    assert run_logout(LogoutInput(None), kv).success is True


def test_run_dispatch(kv: InMemoryKVStore, clock: FrozenClock) -> None:
    out = run(LoginInput("hunter2"), kv=kv, time=clock, admin_password="hunter2")
    assert out.success is True
    with pytest.raises(ValueError):
        run("bogus", kv=kv, time=clock)  # type: ignore[arg-type]
