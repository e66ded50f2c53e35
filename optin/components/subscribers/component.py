"""
Subscriber lifecycle component.

Functional core for the double opt-in subscription lifecycle.

Key behaviors:
- Subscribe creates a pending record and sends a confirmation email;
  a failed send rolls the record back
- Confirm activates a pending record, bumps the count and sends a
  best-effort welcome email
- Expired confirmation tokens delete the pending record
- Unsubscribe by token, idempotent on repeat
- Admin bulk import creates active subscribers directly
- Admin listing with newest-first pagination and optional masking

Every run_* handler returns a structured output; store failures are
reported as STORE_FAILURE and never raised.
"""

from __future__ import annotations

import csv
import io
import logging
import math
import re
from dataclasses import replace
from datetime import UTC, datetime

from optin.components.subscribers.models import (
    ALREADY_SUBSCRIBED,
    INVALID_EMAIL,
    INVALID_TOKEN,
    MISSING_FIELD,
    MISSING_TOKEN,
    NO_PENDING_SUBSCRIPTION,
    NOT_FOUND,
    SEND_FAILED,
    STORE_FAILURE,
    STORE_UNAVAILABLE,
    TOKEN_EXPIRED,
    BulkImportInput,
    BulkImportOutput,
    ConfirmInput,
    ConfirmOutput,
    CountOutput,
    ForceUnsubscribeInput,
    ListSubscribersInput,
    ListSubscribersOutput,
    Pagination,
    ResendConfirmationInput,
    ResendConfirmationOutput,
    SubscribeInput,
    SubscribeOutput,
    Subscriber,
    SubscriberPolicy,
    SubscriberStatus,
    SubscriberSummary,
    UnsubscribeInput,
    UnsubscribeOutput,
    ValidateEmailOutput,
    ValidationError,
    can_transition,
)
from optin.components.subscribers.ports import ClockPort, KVStoreError, SubscriberEmailPort
from optin.components.subscribers.store import SubscriberStore
from optin.components.tokens import generate_token, is_expired, token_expiry

logger = logging.getLogger(__name__)

# Single @, something before it, a dot somewhere after it.
EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MASK_REGEX = re.compile(r"(.{2}).*(@.*)")

SECONDS_PER_DAY = 86400


# --- Pure Functions (Functional Core) ---


def validate_email(email: str | None) -> ValidateEmailOutput:
    """
    Case-fold, trim and shape-check an email address.

    Returns:
        ValidateEmailOutput with the normalized address when valid
    """
    normalized = email.strip().lower() if email else ""

    if not normalized or not EMAIL_REGEX.match(normalized):
        return ValidateEmailOutput(
            is_valid=False,
            errors=[
                ValidationError(INVALID_EMAIL, "Please enter a valid email address", "email")
            ],
        )

    return ValidateEmailOutput(is_valid=True, normalized_email=normalized)


def mask_email(email: str) -> str:
    """``alice@example.com`` → ``al***@example.com``."""
    return MASK_REGEX.sub(r"\1***\2", email)


def new_pending_subscriber(
    email: str,
    now: datetime,
    *,
    expiry_hours: int = 24,
    user_agent: str | None = None,
    ip: str | None = None,
) -> Subscriber:
    """Fresh pending record with a new confirmation/unsubscribe token pair."""
    return Subscriber(
        email=email,
        subscribed_at=now,
        status=SubscriberStatus.PENDING,
        confirmation_token=generate_token(),
        token_expires_at=token_expiry(now, expiry_hours),
        unsubscribe_token=generate_token(),
        user_agent=user_agent,
        ip=ip,
    )


def activate_subscriber(subscriber: Subscriber, now: datetime) -> Subscriber:
    """pending → active; clears the confirmation pair, ensures an unsubscribe token."""
    return subscriber.with_changes(
        status=SubscriberStatus.ACTIVE,
        confirmed_at=now,
        confirmation_token=None,
        token_expires_at=None,
        unsubscribe_token=subscriber.unsubscribe_token or generate_token(),
    )


def deactivate_subscriber(subscriber: Subscriber) -> Subscriber:
    """→ unsubscribed; every token is cleared."""
    return subscriber.with_changes(
        status=SubscriberStatus.UNSUBSCRIBED,
        confirmation_token=None,
        token_expires_at=None,
        unsubscribe_token=None,
    )


def confirmation_expired(subscriber: Subscriber, now: datetime) -> bool:
    if subscriber.token_expires_at is None:
        return False
    return is_expired(subscriber.token_expires_at, now)


def paginate(total_count: int, page: int, limit: int) -> Pagination:
    total_pages = math.ceil(total_count / limit) if total_count else 0
    return Pagination(
        current_page=page,
        total_pages=total_pages,
        total_count=total_count,
        limit=limit,
        has_next=page < total_pages,
        has_previous=page > 1,
    )


def _now(clock: ClockPort | None) -> datetime:
    return clock.now_utc() if clock else datetime.now(UTC)


def _store_unavailable() -> ValidationError:
    return ValidationError(STORE_UNAVAILABLE, "Service temporarily unavailable")


def _store_failure() -> ValidationError:
    return ValidationError(STORE_FAILURE, "An unexpected error occurred. Please try again.")


def _send_failed() -> ValidationError:
    return ValidationError(SEND_FAILED, "Failed to send confirmation email. Please try again.")


def _token_expired() -> ValidationError:
    return ValidationError(
        TOKEN_EXPIRED, "Confirmation token has expired. Please subscribe again.", "token"
    )


# --- Run Handlers ---


def _start_confirmation(
    store: SubscriberStore,
    email_service: SubscriberEmailPort,
    subscriber: Subscriber,
    previous: Subscriber | None,
) -> SubscribeOutput:
    """Write the pending record, then send; roll back to ``previous`` on failure."""
    store.put_subscriber(subscriber)

    result = email_service.send_confirmation_email(
        subscriber.email, subscriber.confirmation_token or ""
    )
    if not result.success:
        logger.error(
            "Failed to send confirmation email (%s) to %s: %s; rolling back",
            result.provider,
            subscriber.email,
            result.error,
        )
        if previous is None:
            store.delete_subscriber(subscriber.email)
        else:
            store.put_subscriber(previous)
        return SubscribeOutput(success=False, email=subscriber.email, errors=[_send_failed()])

    logger.info("Confirmation email sent to %s via %s", subscriber.email, result.provider)
    return SubscribeOutput(success=True, email=subscriber.email)


def run_subscribe(
    inp: SubscribeInput,
    store: SubscriberStore | None,
    *,
    email_service: SubscriberEmailPort,
    clock: ClockPort | None = None,
    policy: SubscriberPolicy | None = None,
) -> SubscribeOutput:
    """
    Handle a subscription request.

    absent → pending (send confirmation), pending → pending (resend with the
    existing token), unsubscribed → pending (fresh token pair). Active
    subscribers are rejected; an expired pending record is deleted and the
    caller is told to start again.
    """
    cfg = policy or SubscriberPolicy()

    validation = validate_email(inp.email)
    if not validation.is_valid or validation.normalized_email is None:
        return SubscribeOutput(success=False, errors=validation.errors)
    email = validation.normalized_email

    if store is None:
        return SubscribeOutput(success=False, email=email, errors=[_store_unavailable()])

    now = _now(clock)

    try:
        existing = store.get_subscriber(email)

        if existing is None:
            fresh = new_pending_subscriber(
                email,
                now,
                expiry_hours=cfg.confirmation_token_expiry_hours,
                user_agent=inp.user_agent,
                ip=inp.ip,
            )
            return _start_confirmation(store, email_service, fresh, previous=None)

        if existing.status == SubscriberStatus.ACTIVE:
            return SubscribeOutput(
                success=False,
                email=email,
                errors=[
                    ValidationError(
                        ALREADY_SUBSCRIBED,
                        "This email is already subscribed to our newsletter",
                        "email",
                    )
                ],
            )

        if existing.status == SubscriberStatus.PENDING and existing.confirmation_token:
            if confirmation_expired(existing, now):
                store.delete_subscriber(email)
                logger.info("Deleted expired pending subscription for %s", email)
                return SubscribeOutput(success=False, email=email, errors=[_token_expired()])

            result = email_service.send_confirmation_email(email, existing.confirmation_token)
            if not result.success:
                logger.error(
                    "Failed to resend confirmation email (%s) to %s: %s",
                    result.provider,
                    email,
                    result.error,
                )
                return SubscribeOutput(success=False, email=email, errors=[_send_failed()])
            return SubscribeOutput(success=True, email=email, resent=True)

        # Unsubscribed, or a pending record without a token: new cycle
        fresh = new_pending_subscriber(
            email,
            now,
            expiry_hours=cfg.confirmation_token_expiry_hours,
            user_agent=inp.user_agent,
            ip=inp.ip,
        )
        out = _start_confirmation(store, email_service, fresh, previous=existing)
        if out.success and existing.status == SubscriberStatus.UNSUBSCRIBED:
            logger.info("Reactivated unsubscribed address %s as pending", email)
            return replace(out, reactivated=True)
        return out

    except KVStoreError:
        logger.exception("Store failure during subscribe for %s", email)
        return SubscribeOutput(success=False, email=email, errors=[_store_failure()])


def run_confirm(
    inp: ConfirmInput,
    store: SubscriberStore | None,
    *,
    email_service: SubscriberEmailPort,
    clock: ClockPort | None = None,
    policy: SubscriberPolicy | None = None,
) -> ConfirmOutput:
    """
    Handle a confirmation link.

    The welcome email is best-effort: its failure is logged and never
    undoes the confirmation.
    """
    cfg = policy or SubscriberPolicy()

    if not inp.token:
        return ConfirmOutput(
            success=False,
            errors=[ValidationError(MISSING_TOKEN, "Confirmation token is required", "token")],
        )

    if store is None:
        return ConfirmOutput(success=False, errors=[_store_unavailable()])

    now = _now(clock)
    invalid = ValidationError(INVALID_TOKEN, "Invalid or expired confirmation token", "token")

    try:
        subscriber = store.find_by_confirmation_token(inp.token)

        if subscriber is None:
            # Spent token from an earlier confirmation
            spent_email = store.email_for_spent_confirmation_token(inp.token)
            confirmed = store.get_subscriber(spent_email) if spent_email else None
            if confirmed is not None and confirmed.status == SubscriberStatus.ACTIVE:
                return ConfirmOutput(success=True, email=confirmed.email, already_confirmed=True)
            return ConfirmOutput(success=False, errors=[invalid])

        if subscriber.status == SubscriberStatus.ACTIVE:
            return ConfirmOutput(success=True, email=subscriber.email, already_confirmed=True)

        if not can_transition(subscriber.status, SubscriberStatus.ACTIVE):
            return ConfirmOutput(success=False, errors=[invalid])

        if confirmation_expired(subscriber, now):
            store.delete_subscriber(subscriber.email)
            logger.info("Deleted pending subscription for %s: token expired", subscriber.email)
            return ConfirmOutput(success=False, email=subscriber.email, errors=[_token_expired()])

        active = activate_subscriber(subscriber, now)
        store.put_subscriber(active)
        store.remember_confirmation_token(
            inp.token, active.email, cfg.spent_token_ttl_days * SECONDS_PER_DAY
        )
        store.increment_count(1)
        logger.info("Subscription confirmed: %s", active.email)

    except KVStoreError:
        logger.exception("Store failure during confirmation")
        return ConfirmOutput(success=False, errors=[_store_failure()])

    welcome_sent = False
    try:
        result = email_service.send_welcome_email(active.email, active.unsubscribe_token)
        welcome_sent = result.success
        if not result.success:
            logger.error(
                "Failed to send welcome email (%s) to %s: %s",
                result.provider,
                active.email,
                result.error,
            )
    except Exception:
        logger.exception("Error sending welcome email to %s", active.email)

    return ConfirmOutput(success=True, email=active.email, welcome_sent=welcome_sent)


def run_resend_confirmation(
    inp: ResendConfirmationInput,
    store: SubscriberStore | None,
    *,
    email_service: SubscriberEmailPort,
    clock: ClockPort | None = None,
) -> ResendConfirmationOutput:
    """Re-send the confirmation email for a pending subscription, same token."""
    validation = validate_email(inp.email)
    if not validation.is_valid or validation.normalized_email is None:
        return ResendConfirmationOutput(success=False, errors=validation.errors)
    email = validation.normalized_email

    if store is None:
        return ResendConfirmationOutput(success=False, email=email, errors=[_store_unavailable()])

    now = _now(clock)

    try:
        subscriber = store.get_subscriber(email)
        if (
            subscriber is None
            or subscriber.status != SubscriberStatus.PENDING
            or not subscriber.confirmation_token
        ):
            return ResendConfirmationOutput(
                success=False,
                email=email,
                errors=[
                    ValidationError(
                        NO_PENDING_SUBSCRIPTION,
                        "No pending subscription found for this email address",
                        "email",
                    )
                ],
            )

        if confirmation_expired(subscriber, now):
            store.delete_subscriber(email)
            logger.info("Deleted expired pending subscription for %s on resend", email)
            return ResendConfirmationOutput(success=False, email=email, errors=[_token_expired()])

    except KVStoreError:
        logger.exception("Store failure during confirmation resend for %s", email)
        return ResendConfirmationOutput(success=False, email=email, errors=[_store_failure()])

    result = email_service.send_confirmation_email(email, subscriber.confirmation_token)
    if not result.success:
        logger.error(
            "Failed to resend confirmation email (%s) to %s: %s",
            result.provider,
            email,
            result.error,
        )
        return ResendConfirmationOutput(success=False, email=email, errors=[_send_failed()])

    return ResendConfirmationOutput(success=True, email=email)


def _unsubscribe(
    store: SubscriberStore,
    subscriber: Subscriber,
    policy: SubscriberPolicy,
) -> UnsubscribeOutput:
    was_active = subscriber.status == SubscriberStatus.ACTIVE
    store.put_subscriber(deactivate_subscriber(subscriber))
    if subscriber.unsubscribe_token:
        store.remember_unsubscribe_token(
            subscriber.unsubscribe_token,
            subscriber.email,
            policy.spent_token_ttl_days * SECONDS_PER_DAY,
        )
    if was_active:
        store.increment_count(-1)
    logger.info("Unsubscribed: %s", subscriber.email)
    return UnsubscribeOutput(success=True, email=subscriber.email)


def run_unsubscribe(
    inp: UnsubscribeInput,
    store: SubscriberStore | None,
    *,
    policy: SubscriberPolicy | None = None,
) -> UnsubscribeOutput:
    """Handle an unsubscribe link (idempotent)."""
    cfg = policy or SubscriberPolicy()

    if not inp.token:
        return UnsubscribeOutput(
            success=False,
            errors=[ValidationError(MISSING_TOKEN, "Unsubscribe token is required", "token")],
        )

    if store is None:
        return UnsubscribeOutput(success=False, errors=[_store_unavailable()])

    try:
        subscriber = store.find_by_unsubscribe_token(inp.token)

        if subscriber is None:
            spent_email = store.email_for_spent_unsubscribe_token(inp.token)
            previous = store.get_subscriber(spent_email) if spent_email else None
            if previous is not None and previous.status == SubscriberStatus.UNSUBSCRIBED:
                return UnsubscribeOutput(
                    success=True, email=previous.email, already_unsubscribed=True
                )
            return UnsubscribeOutput(
                success=False,
                errors=[
                    ValidationError(
                        INVALID_TOKEN, "Invalid or expired unsubscribe token", "token"
                    )
                ],
            )

        if subscriber.status == SubscriberStatus.UNSUBSCRIBED:
            return UnsubscribeOutput(
                success=True, email=subscriber.email, already_unsubscribed=True
            )

        return _unsubscribe(store, subscriber, cfg)

    except KVStoreError:
        logger.exception("Store failure during unsubscribe")
        return UnsubscribeOutput(success=False, errors=[_store_failure()])


def run_force_unsubscribe(
    inp: ForceUnsubscribeInput,
    store: SubscriberStore | None,
    *,
    policy: SubscriberPolicy | None = None,
) -> UnsubscribeOutput:
    """Admin removal by email (idempotent)."""
    cfg = policy or SubscriberPolicy()

    email = inp.email.strip().lower() if inp.email else ""
    if not email:
        return UnsubscribeOutput(
            success=False,
            errors=[ValidationError(MISSING_FIELD, "Email is required", "email")],
        )

    if store is None:
        return UnsubscribeOutput(success=False, email=email, errors=[_store_unavailable()])

    try:
        subscriber = store.get_subscriber(email)
        if subscriber is None:
            return UnsubscribeOutput(
                success=False,
                email=email,
                errors=[ValidationError(NOT_FOUND, "Subscriber not found", "email")],
            )

        if subscriber.status == SubscriberStatus.UNSUBSCRIBED:
            return UnsubscribeOutput(success=True, email=email, already_unsubscribed=True)

        return _unsubscribe(store, subscriber, cfg)

    except KVStoreError:
        logger.exception("Store failure during admin unsubscribe for %s", email)
        return UnsubscribeOutput(success=False, email=email, errors=[_store_failure()])


def _first_cells(csv_text: str) -> list[str]:
    """First column of each non-blank line, header row ``email`` dropped."""
    cells: list[str] = []
    for index, row in enumerate(csv.reader(io.StringIO(csv_text))):
        if not row or not row[0].strip():
            continue
        cell = row[0].strip()
        if index == 0 and cell.lower() == "email":
            continue
        cells.append(cell)
    return cells


def run_bulk_import(
    inp: BulkImportInput,
    store: SubscriberStore | None,
    *,
    clock: ClockPort | None = None,
    policy: SubscriberPolicy | None = None,
) -> BulkImportOutput:
    """
    Import a CSV of addresses as active subscribers, bypassing confirmation.

    Existing addresses (any status) are skipped; malformed ones are counted
    as invalid. Only the first ``bulk_import_error_limit`` messages are kept.
    """
    cfg = policy or SubscriberPolicy()

    if not inp.csv_text or not inp.csv_text.strip():
        return BulkImportOutput(
            success=False,
            errors=[ValidationError(MISSING_FIELD, "CSV data is required", "csv")],
        )

    if store is None:
        return BulkImportOutput(success=False, errors=[_store_unavailable()])

    now = _now(clock)
    added = skipped = invalid = 0
    messages: list[str] = []

    try:
        for cell in _first_cells(inp.csv_text):
            validation = validate_email(cell)
            if not validation.is_valid or validation.normalized_email is None:
                invalid += 1
                messages.append(f"Invalid email format: {cell}")
                continue

            email = validation.normalized_email
            if store.get_subscriber(email) is not None:
                skipped += 1
                continue

            store.put_subscriber(
                Subscriber(
                    email=email,
                    subscribed_at=now,
                    status=SubscriberStatus.ACTIVE,
                    confirmed_at=now,
                    unsubscribe_token=generate_token(),
                    user_agent=inp.user_agent,
                    ip=inp.ip,
                )
            )
            added += 1

        if added:
            store.increment_count(added)

    except KVStoreError:
        logger.exception("Store failure during bulk import after %d additions", added)
        return BulkImportOutput(
            success=False,
            added=added,
            skipped=skipped,
            invalid=invalid,
            messages=messages[: cfg.bulk_import_error_limit],
            errors=[_store_failure()],
        )

    logger.info("Bulk import: added=%d skipped=%d invalid=%d", added, skipped, invalid)
    return BulkImportOutput(
        success=True,
        added=added,
        skipped=skipped,
        invalid=invalid,
        messages=messages[: cfg.bulk_import_error_limit],
    )


def run_list_subscribers(
    inp: ListSubscribersInput,
    store: SubscriberStore | None,
    *,
    policy: SubscriberPolicy | None = None,
) -> ListSubscribersOutput:
    """Newest-first page of subscribers; page and limit are clamped."""
    cfg = policy or SubscriberPolicy()

    if store is None:
        return ListSubscribersOutput(success=False, errors=[_store_unavailable()])

    page = max(1, inp.page)
    limit = min(max(1, inp.limit), cfg.list_max_limit)

    try:
        everyone = sorted(store.iter_subscribers(), key=lambda s: s.subscribed_at, reverse=True)
    except KVStoreError:
        logger.exception("Store failure while listing subscribers")
        return ListSubscribersOutput(success=False, errors=[_store_failure()])

    start = (page - 1) * limit
    summaries = [
        SubscriberSummary(
            email=mask_email(s.email) if inp.masked else s.email,
            subscribed_at=s.subscribed_at,
            status=s.status,
            confirmed_at=s.confirmed_at,
            token_expires_at=s.token_expires_at,
        )
        for s in everyone[start : start + limit]
    ]
    return ListSubscribersOutput(
        success=True,
        subscribers=summaries,
        pagination=paginate(len(everyone), page, limit),
    )


def run_count(store: SubscriberStore | None) -> CountOutput:
    if store is None:
        return CountOutput(success=False, errors=[_store_unavailable()])
    try:
        return CountOutput(success=True, count=store.get_count())
    except KVStoreError:
        logger.exception("Store failure while reading subscriber count")
        return CountOutput(success=False, errors=[_store_failure()])


def run(
    inp: (
        SubscribeInput
        | ConfirmInput
        | ResendConfirmationInput
        | UnsubscribeInput
        | ForceUnsubscribeInput
        | BulkImportInput
        | ListSubscribersInput
    ),
    *,
    store: SubscriberStore | None,
    email_service: SubscriberEmailPort | None = None,
    clock: ClockPort | None = None,
    policy: SubscriberPolicy | None = None,
) -> (
    SubscribeOutput
    | ConfirmOutput
    | ResendConfirmationOutput
    | UnsubscribeOutput
    | BulkImportOutput
    | ListSubscribersOutput
):
    """
    Main component entry point.

    Args:
        inp: Input command
        store: Subscriber store (None when the store is not configured)
        email_service: Email facade (required for subscribe/confirm/resend)
        clock: Time source (Optional)
        policy: Lifecycle tunables (Optional)

    Returns:
        Operation result
    """
    if isinstance(inp, SubscribeInput | ConfirmInput | ResendConfirmationInput):
        if email_service is None:
            raise ValueError(f"{type(inp).__name__} requires an email service")

    if isinstance(inp, SubscribeInput):
        return run_subscribe(inp, store, email_service=email_service, clock=clock, policy=policy)
    elif isinstance(inp, ConfirmInput):
        return run_confirm(inp, store, email_service=email_service, clock=clock, policy=policy)
    elif isinstance(inp, ResendConfirmationInput):
        return run_resend_confirmation(inp, store, email_service=email_service, clock=clock)
    elif isinstance(inp, UnsubscribeInput):
        return run_unsubscribe(inp, store, policy=policy)
    elif isinstance(inp, ForceUnsubscribeInput):
        return run_force_unsubscribe(inp, store, policy=policy)
    elif isinstance(inp, BulkImportInput):
        return run_bulk_import(inp, store, clock=clock, policy=policy)
    elif isinstance(inp, ListSubscribersInput):
        return run_list_subscribers(inp, store, policy=policy)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
