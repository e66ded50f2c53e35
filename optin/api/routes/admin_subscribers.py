"""
Admin subscriber management endpoints.

Endpoints:
- GET /admin/subscribers?action=count - Active subscriber count
- GET /admin/subscribers?action=list&page=&limit=&masked= - Paginated listing
- POST /admin/subscribers - Bulk import from CSV (form field ``csv``)
- DELETE /admin/subscribers - Force-unsubscribe by email

All endpoints require an admin session cookie.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, status

from optin.adapters.clock import SystemClock
from optin.api.deps import (
    client_ip,
    get_clock,
    get_subscriber_policy,
    get_subscriber_store,
    require_admin_session,
    user_agent,
)
from optin.api.schemas import (
    BulkImportResponse,
    BulkImportResults,
    CountResponse,
    MessageResponse,
    PaginationModel,
    SubscriberListResponse,
    SubscriberModel,
    raise_for_errors,
)
from optin.components.admin_auth import AdminSession
from optin.components.subscribers import (
    BulkImportInput,
    ForceUnsubscribeInput,
    ListSubscribersInput,
    SubscriberPolicy,
    SubscriberStore,
    run_bulk_import,
    run_count,
    run_force_unsubscribe,
    run_list_subscribers,
)
from optin.components.subscribers.models import (
    INVALID_EMAIL,
    MISSING_FIELD,
    NOT_FOUND,
    STORE_FAILURE,
    STORE_UNAVAILABLE,
)

router = APIRouter()

ADMIN_STATUS = {
    INVALID_EMAIL: status.HTTP_400_BAD_REQUEST,
    MISSING_FIELD: status.HTTP_400_BAD_REQUEST,
    NOT_FOUND: status.HTTP_404_NOT_FOUND,
    STORE_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
    STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


@router.get("", response_model=CountResponse | SubscriberListResponse)
def get_subscribers(
    action: str | None = Query(None),
    page: int = Query(1),
    limit: int | None = Query(None),
    masked: bool = Query(False),
    store: SubscriberStore | None = Depends(get_subscriber_store),
    policy: SubscriberPolicy = Depends(get_subscriber_policy),
    _session: AdminSession = Depends(require_admin_session),
) -> CountResponse | SubscriberListResponse:
    """Subscriber count or a newest-first page of subscribers."""
    if action == "count":
        count = run_count(store)
        if not count.success:
            raise_for_errors(count.errors, ADMIN_STATUS)
        return CountResponse(success=True, count=count.count)

    if action == "list":
        listing = run_list_subscribers(
            ListSubscribersInput(
                page=page,
                limit=limit or policy.list_default_limit,
                masked=masked,
            ),
            store,
            policy=policy,
        )
        if not listing.success or listing.pagination is None:
            raise_for_errors(listing.errors, ADMIN_STATUS)
        return SubscriberListResponse(
            success=True,
            subscribers=[SubscriberModel.from_summary(s) for s in listing.subscribers],
            pagination=PaginationModel.from_pagination(listing.pagination),
        )

    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid action")


@router.post("", response_model=BulkImportResponse)
def bulk_import(
    request: Request,
    csv: str | None = Form(None),
    store: SubscriberStore | None = Depends(get_subscriber_store),
    clock: SystemClock = Depends(get_clock),
    policy: SubscriberPolicy = Depends(get_subscriber_policy),
    _session: AdminSession = Depends(require_admin_session),
) -> BulkImportResponse:
    """Import addresses as active subscribers, skipping existing ones."""
    result = run_bulk_import(
        BulkImportInput(
            csv_text=csv or "",
            user_agent=user_agent(request),
            ip=client_ip(request),
        ),
        store,
        clock=clock,
        policy=policy,
    )
    if not result.success:
        raise_for_errors(result.errors, ADMIN_STATUS)

    return BulkImportResponse(
        success=True,
        message=(
            f"Imported {result.added} subscribers "
            f"({result.skipped} skipped, {result.invalid} invalid)"
        ),
        results=BulkImportResults(
            added=result.added,
            skipped=result.skipped,
            invalid=result.invalid,
            errors=result.messages,
        ),
    )


@router.delete("", response_model=MessageResponse)
def force_unsubscribe(
    email: str | None = Form(None),
    email_query: str | None = Query(None, alias="email"),
    store: SubscriberStore | None = Depends(get_subscriber_store),
    policy: SubscriberPolicy = Depends(get_subscriber_policy),
    _session: AdminSession = Depends(require_admin_session),
) -> MessageResponse:
    result = run_force_unsubscribe(
        ForceUnsubscribeInput(email=email or email_query or ""),
        store,
        policy=policy,
    )
    if not result.success:
        raise_for_errors(result.errors, ADMIN_STATUS)

    return MessageResponse(success=True, message="Successfully unsubscribed")
