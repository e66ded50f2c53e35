"""
Admin session component.

Single shared-password admin login. Sessions live in the key-value
namespace under ``session:<token>`` with a TTL, and are deleted lazily
when found expired.
"""

from __future__ import annotations

import json
import logging
import secrets
from datetime import timedelta

from optin.components.subscribers.ports import KVStoreError, KVStorePort

from .models import (
    AUTH_UNAVAILABLE,
    INVALID_PASSWORD,
    PASSWORD_REQUIRED,
    SESSION_EXPIRED,
    SESSION_NOT_FOUND,
    STORE_FAILURE,
    STORE_UNAVAILABLE,
    AdminSession,
    AuthOutput,
    LoginInput,
    LogoutInput,
    VerifySessionInput,
)
from .ports import TimePort, TokenFactoryPort

logger = logging.getLogger(__name__)

SESSION_PREFIX = "session:"
SESSION_TTL_HOURS = 24


def new_session_token() -> str:
    """64 hex chars (32 random bytes)."""
    return secrets.token_hex(32)


def session_key(token: str) -> str:
    return f"{SESSION_PREFIX}{token}"


def check_password(candidate: str, expected: str) -> bool:
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


def run_login(
    inp: LoginInput,
    kv: KVStorePort | None,
    time: TimePort,
    admin_password: str | None,
    ttl_hours: int = SESSION_TTL_HOURS,
    token_factory: TokenFactoryPort = new_session_token,
) -> AuthOutput:
    if not inp.password:
        return AuthOutput(success=False, error="Password is required", code=PASSWORD_REQUIRED)

    if not admin_password:
        logger.error("ADMIN_PASSWORD not configured")
        return AuthOutput(
            success=False, error="Authentication service unavailable", code=AUTH_UNAVAILABLE
        )

    if not check_password(inp.password, admin_password):
        logger.warning("Rejected admin login from %s", inp.ip or "unknown")
        return AuthOutput(success=False, error="Invalid password", code=INVALID_PASSWORD)

    if kv is None:
        return AuthOutput(
            success=False, error="Service temporarily unavailable", code=STORE_UNAVAILABLE
        )

    now = time.now_utc()
    session = AdminSession(
        token=token_factory(),
        created_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
        ip=inp.ip,
        user_agent=inp.user_agent,
    )
    try:
        kv.put(
            session_key(session.token),
            json.dumps(session.to_record()),
            ttl_seconds=ttl_hours * 3600,
        )
    except KVStoreError:
        logger.exception("Failed to store admin session")
        return AuthOutput(
            success=False, error="Authentication failed. Please try again.", code=STORE_FAILURE
        )

    logger.info("Admin session created for %s", inp.ip or "unknown")
    return AuthOutput(session=session, success=True)


def run_verify_session(
    inp: VerifySessionInput,
    kv: KVStorePort | None,
    time: TimePort,
) -> AuthOutput:
    if not inp.token:
        return AuthOutput(success=False, error="Session not found", code=SESSION_NOT_FOUND)
    if kv is None:
        return AuthOutput(
            success=False, error="Service temporarily unavailable", code=STORE_UNAVAILABLE
        )

    try:
        record = kv.get_json(session_key(inp.token))
        if not isinstance(record, dict):
            return AuthOutput(success=False, error="Session not found", code=SESSION_NOT_FOUND)

        try:
            session = AdminSession.from_record(record)
        except (KeyError, ValueError, TypeError):
            logger.warning("Discarding malformed admin session record")
            kv.delete(session_key(inp.token))
            return AuthOutput(success=False, error="Session not found", code=SESSION_NOT_FOUND)

        if time.now_utc() > session.expires_at:
            kv.delete(session_key(inp.token))
            logger.info("Expired admin session removed")
            return AuthOutput(success=False, error="Session expired", code=SESSION_EXPIRED)

    except KVStoreError:
        logger.exception("Session verification error")
        return AuthOutput(success=False, error="Session verification failed", code=STORE_FAILURE)

    return AuthOutput(session=session, success=True)


def run_logout(inp: LogoutInput, kv: KVStorePort | None) -> AuthOutput:
    if inp.token and kv is not None:
        try:
            kv.delete(session_key(inp.token))
        except KVStoreError:
            logger.exception("Logout error")
            return AuthOutput(success=False, error="Logout failed", code=STORE_FAILURE)
    return AuthOutput(success=True)


def run(
    inp: LoginInput | VerifySessionInput | LogoutInput,
    *,
    kv: KVStorePort | None,
    time: TimePort,
    admin_password: str | None = None,
    ttl_hours: int = SESSION_TTL_HOURS,
) -> AuthOutput:
    if isinstance(inp, LoginInput):
        return run_login(inp, kv, time, admin_password, ttl_hours)
    elif isinstance(inp, VerifySessionInput):
        return run_verify_session(inp, kv, time)
    elif isinstance(inp, LogoutInput):
        return run_logout(inp, kv)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
