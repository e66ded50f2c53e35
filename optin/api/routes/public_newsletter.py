"""
Public newsletter endpoints for the double opt-in flow.

Endpoints:
- POST /subscribe - Start a subscription (sends confirmation email)
- GET /confirm?token= - Confirm a subscription
- POST /confirm - Resend the confirmation email
- GET /unsubscribe?token= - Unsubscribe via emailed token
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, Query, Request, status

from optin.adapters.clock import SystemClock
from optin.api.deps import (
    client_ip,
    get_clock,
    get_email_service,
    get_subscriber_policy,
    get_subscriber_store,
    user_agent,
)
from optin.api.schemas import EmailMessageResponse, MessageResponse, raise_for_errors
from optin.components.email.service import EmailService
from optin.components.subscribers import (
    ConfirmInput,
    ResendConfirmationInput,
    SubscribeInput,
    SubscriberPolicy,
    SubscriberStore,
    UnsubscribeInput,
    run_confirm,
    run_resend_confirmation,
    run_subscribe,
    run_unsubscribe,
)
from optin.components.subscribers.models import (
    ALREADY_SUBSCRIBED,
    INVALID_EMAIL,
    INVALID_TOKEN,
    MISSING_TOKEN,
    NO_PENDING_SUBSCRIPTION,
    SEND_FAILED,
    STORE_FAILURE,
    STORE_UNAVAILABLE,
    TOKEN_EXPIRED,
)

router = APIRouter()

_COMMON = {
    SEND_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    STORE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}

SUBSCRIBE_STATUS = {
    **_COMMON,
    INVALID_EMAIL: status.HTTP_400_BAD_REQUEST,
    ALREADY_SUBSCRIBED: status.HTTP_409_CONFLICT,
    TOKEN_EXPIRED: status.HTTP_410_GONE,
}

CONFIRM_STATUS = {
    **_COMMON,
    MISSING_TOKEN: status.HTTP_400_BAD_REQUEST,
    INVALID_TOKEN: status.HTTP_400_BAD_REQUEST,
    TOKEN_EXPIRED: status.HTTP_400_BAD_REQUEST,
}

RESEND_STATUS = {
    **_COMMON,
    INVALID_EMAIL: status.HTTP_400_BAD_REQUEST,
    NO_PENDING_SUBSCRIPTION: status.HTTP_404_NOT_FOUND,
    TOKEN_EXPIRED: status.HTTP_400_BAD_REQUEST,
}

UNSUBSCRIBE_STATUS = {
    **_COMMON,
    MISSING_TOKEN: status.HTTP_400_BAD_REQUEST,
    INVALID_TOKEN: status.HTTP_404_NOT_FOUND,
}


# --- Subscribe ---


@router.post(
    "/subscribe",
    response_model=MessageResponse,
    summary="Subscribe to newsletter",
    description="Start the double opt-in flow. Sends a confirmation email.",
)
def subscribe(
    request: Request,
    email: str | None = Form(None),
    store: SubscriberStore | None = Depends(get_subscriber_store),
    email_service: EmailService = Depends(get_email_service),
    clock: SystemClock = Depends(get_clock),
    policy: SubscriberPolicy = Depends(get_subscriber_policy),
) -> MessageResponse:
    """
    Subscribe an address.

    A pending address with a live token gets the same token re-sent; a
    previously unsubscribed address starts a fresh confirmation cycle.
    """
    result = run_subscribe(
        SubscribeInput(
            email=email or "",
            user_agent=user_agent(request),
            ip=client_ip(request),
        ),
        store,
        email_service=email_service,
        clock=clock,
        policy=policy,
    )
    if not result.success:
        raise_for_errors(result.errors, SUBSCRIBE_STATUS)

    if result.resent:
        return MessageResponse(
            success=True,
            message="Confirmation email has been resent. Please check your inbox.",
        )
    return MessageResponse(
        success=True,
        message="Confirmation email sent. Please check your inbox.",
    )


# --- Confirm ---


@router.get(
    "/confirm",
    response_model=EmailMessageResponse,
    response_model_exclude_none=True,
    summary="Confirm newsletter subscription",
)
def confirm(
    token: str | None = Query(None),
    store: SubscriberStore | None = Depends(get_subscriber_store),
    email_service: EmailService = Depends(get_email_service),
    clock: SystemClock = Depends(get_clock),
    policy: SubscriberPolicy = Depends(get_subscriber_policy),
) -> EmailMessageResponse:
    """Activate a pending subscriber. Idempotent for already-confirmed links."""
    result = run_confirm(
        ConfirmInput(token=token or ""),
        store,
        email_service=email_service,
        clock=clock,
        policy=policy,
    )
    if not result.success:
        raise_for_errors(result.errors, CONFIRM_STATUS)

    if result.already_confirmed:
        return EmailMessageResponse(
            success=True,
            message="Email address already confirmed",
            email=result.email,
        )
    return EmailMessageResponse(
        success=True,
        message="Email confirmed successfully! Welcome to our newsletter!",
        email=result.email,
    )


@router.post(
    "/confirm",
    response_model=MessageResponse,
    summary="Resend confirmation email",
)
def resend_confirmation(
    email: str | None = Form(None),
    store: SubscriberStore | None = Depends(get_subscriber_store),
    email_service: EmailService = Depends(get_email_service),
    clock: SystemClock = Depends(get_clock),
) -> MessageResponse:
    result = run_resend_confirmation(
        ResendConfirmationInput(email=email or ""),
        store,
        email_service=email_service,
        clock=clock,
    )
    if not result.success:
        raise_for_errors(result.errors, RESEND_STATUS)

    return MessageResponse(
        success=True,
        message="Confirmation email has been resent. Please check your inbox.",
    )


# --- Unsubscribe ---


@router.get(
    "/unsubscribe",
    response_model=EmailMessageResponse,
    response_model_exclude_none=True,
    summary="Unsubscribe from newsletter",
)
def unsubscribe(
    token: str | None = Query(None),
    store: SubscriberStore | None = Depends(get_subscriber_store),
    policy: SubscriberPolicy = Depends(get_subscriber_policy),
) -> EmailMessageResponse:
    result = run_unsubscribe(UnsubscribeInput(token=token or ""), store, policy=policy)
    if not result.success:
        raise_for_errors(result.errors, UNSUBSCRIBE_STATUS)

    if result.already_unsubscribed:
        return EmailMessageResponse(
            success=True,
            message="Email address is already unsubscribed",
            email=result.email,
        )
    return EmailMessageResponse(
        success=True,
        message="Successfully unsubscribed from newsletter",
        email=result.email,
    )
