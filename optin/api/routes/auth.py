from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, status

from optin.adapters.clock import SystemClock
from optin.api.deps import (
    SESSION_COOKIE,
    Settings,
    client_ip,
    get_clock,
    get_kv_store,
    get_rules,
    get_settings,
    user_agent,
)
from optin.api.schemas import MessageResponse
from optin.components.admin_auth import LoginInput, LogoutInput, run_login, run_logout
from optin.components.admin_auth.models import (
    AUTH_UNAVAILABLE,
    INVALID_PASSWORD,
    PASSWORD_REQUIRED,
    STORE_UNAVAILABLE,
)
from optin.components.subscribers import KVStorePort
from optin.rules.models import Rules

router = APIRouter()

LOGIN_STATUS = {
    PASSWORD_REQUIRED: status.HTTP_400_BAD_REQUEST,
    AUTH_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    INVALID_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@router.post("", response_model=MessageResponse)
def login(
    request: Request,
    response: Response,
    password: str | None = Form(None),
    kv: KVStorePort | None = Depends(get_kv_store),
    clock: SystemClock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> MessageResponse:
    """Check the admin password and open a session cookie."""
    result = run_login(
        LoginInput(
            password=password or "",
            ip=client_ip(request),
            user_agent=user_agent(request),
        ),
        kv,
        clock,
        settings.admin_password,
        ttl_hours=rules.sessions.ttl_hours,
    )
    if not result.success or result.session is None:
        raise HTTPException(
            status_code=LOGIN_STATUS.get(result.code or "", status.HTTP_500_INTERNAL_SERVER_ERROR),
            detail=result.error or "Authentication failed. Please try again.",
        )

    max_age = rules.sessions.ttl_hours * 3600
    response.set_cookie(
        key=SESSION_COOKIE,
        value=result.session.token,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=True,
        samesite="strict",
    )
    return MessageResponse(success=True, message="Authentication successful")


@router.delete("", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    kv: KVStorePort | None = Depends(get_kv_store),
) -> MessageResponse:
    """Drop the server-side session and clear the cookie."""
    result = run_logout(LogoutInput(token=request.cookies.get(SESSION_COOKIE)), kv)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.error or "Logout failed",
        )

    response.delete_cookie(
        key=SESSION_COOKIE,
        path="/",
        httponly=True,
        secure=True,
        samesite="strict",
    )
    return MessageResponse(success=True, message="Logged out successfully")
