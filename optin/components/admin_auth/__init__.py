"""
Admin auth component - shared-password admin sessions.

Handles login, session verification and logout.
"""

from .component import (
    SESSION_PREFIX,
    SESSION_TTL_HOURS,
    check_password,
    new_session_token,
    run,
    run_login,
    run_logout,
    run_verify_session,
    session_key,
)
from .models import (
    AdminSession,
    AuthOutput,
    LoginInput,
    LogoutInput,
    VerifySessionInput,
)
from .ports import TimePort, TokenFactoryPort

__all__ = [
    # Entry points
    "run",
    "run_login",
    "run_logout",
    "run_verify_session",
    # Helpers
    "SESSION_PREFIX",
    "SESSION_TTL_HOURS",
    "check_password",
    "new_session_token",
    "session_key",
    # Models
    "AdminSession",
    "AuthOutput",
    "LoginInput",
    "LogoutInput",
    "VerifySessionInput",
    # Ports
    "TimePort",
    "TokenFactoryPort",
]
