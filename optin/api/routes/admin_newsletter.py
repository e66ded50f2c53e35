"""
Admin newsletter broadcast endpoint.

POST /admin/newsletter validates the request and snapshots the active
audience, answers immediately, and sends in a background task.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Form, status

from optin.api.deps import (
    get_broadcast_policy,
    get_email_service,
    get_subscriber_store,
    require_admin_session,
)
from optin.api.schemas import BroadcastStartedResponse, raise_for_errors
from optin.components.admin_auth import AdminSession
from optin.components.broadcast import (
    BroadcastInput,
    BroadcastPolicy,
    dispatch_broadcast,
    run_prepare_broadcast,
)
from optin.components.broadcast.models import (
    MISSING_FIELD,
    NO_ACTIVE_SUBSCRIBERS,
    STORE_FAILURE,
    STORE_UNAVAILABLE,
)
from optin.components.email.service import EmailService
from optin.components.subscribers import SubscriberStore

router = APIRouter()

BROADCAST_STATUS = {
    MISSING_FIELD: status.HTTP_400_BAD_REQUEST,
    NO_ACTIVE_SUBSCRIBERS: status.HTTP_400_BAD_REQUEST,
    STORE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@router.post("", response_model=BroadcastStartedResponse)
def send_newsletter(
    background_tasks: BackgroundTasks,
    subject: str | None = Form(None),
    content: str | None = Form(None),
    store: SubscriberStore | None = Depends(get_subscriber_store),
    email_service: EmailService = Depends(get_email_service),
    policy: BroadcastPolicy = Depends(get_broadcast_policy),
    _session: AdminSession = Depends(require_admin_session),
) -> BroadcastStartedResponse:
    prepared = run_prepare_broadcast(
        BroadcastInput(subject=subject or "", content=content or ""),
        store,
    )
    if not prepared.success or prepared.plan is None:
        raise_for_errors(prepared.errors, BROADCAST_STATUS)

    background_tasks.add_task(dispatch_broadcast, prepared.plan, email_service, policy)

    return BroadcastStartedResponse(
        success=True,
        message=f"Newsletter sending started for {prepared.total} active subscribers",
        total=prepared.total,
    )
