from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from optin.components.subscribers.models import format_timestamp, parse_timestamp


@dataclass
class AdminSession:
    token: str
    created_at: datetime
    expires_at: datetime
    ip: str | None = None
    user_agent: str | None = None

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "token": self.token,
            "createdAt": format_timestamp(self.created_at),
            "expiresAt": format_timestamp(self.expires_at),
        }
        if self.ip:
            record["ip"] = self.ip
        if self.user_agent:
            record["userAgent"] = self.user_agent
        return record

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> AdminSession:
        created_at = parse_timestamp(record["createdAt"])
        expires_at = parse_timestamp(record["expiresAt"])
        if created_at is None or expires_at is None:
            raise ValueError("session timestamps are empty")
        return cls(
            token=record["token"],
            created_at=created_at,
            expires_at=expires_at,
            ip=record.get("ip"),
            user_agent=record.get("userAgent"),
        )


@dataclass
class LoginInput:
    password: str
    ip: str | None = None
    user_agent: str | None = None


@dataclass
class VerifySessionInput:
    token: str | None


@dataclass
class LogoutInput:
    token: str | None


@dataclass
class AuthOutput:
    session: AdminSession | None = None
    success: bool = False
    error: str | None = None
    code: str | None = None


# --- Error Codes ---

PASSWORD_REQUIRED = "PASSWORD_REQUIRED"
AUTH_UNAVAILABLE = "AUTH_UNAVAILABLE"
INVALID_PASSWORD = "INVALID_PASSWORD"
SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
SESSION_EXPIRED = "SESSION_EXPIRED"
STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
STORE_FAILURE = "STORE_FAILURE"
