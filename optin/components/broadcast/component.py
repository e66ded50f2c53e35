"""
Admin broadcast coordinator.

Key behaviors:
- Snapshot every active subscriber with one full prefix scan
- Reject empty subject/content and empty audiences before anything is sent
- Fan sends out on a worker pool; send ``index`` starts no earlier than
  ``stagger_ms × index`` after the broadcast started
- Sends are independent; failures are counted and logged, never retried
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor

from optin.components.broadcast.models import (
    MISSING_FIELD,
    NO_ACTIVE_SUBSCRIBERS,
    STORE_FAILURE,
    STORE_UNAVAILABLE,
    BroadcastInput,
    BroadcastOutput,
    BroadcastPlan,
    BroadcastPolicy,
    BroadcastSummary,
    DeliveryOutcome,
    Recipient,
)
from optin.components.broadcast.ports import MonotonicPort, NewsletterSenderPort, SleepPort
from optin.components.subscribers.models import ValidationError
from optin.components.subscribers.ports import KVStoreError
from optin.components.subscribers.store import SubscriberStore
from optin.components.tokens import generate_token

logger = logging.getLogger(__name__)


def stagger_delay(index: int, stagger_ms: int) -> float:
    """Seconds to wait before the ``index``-th send."""
    return index * stagger_ms / 1000.0


def run_prepare_broadcast(
    inp: BroadcastInput,
    store: SubscriberStore | None,
) -> BroadcastOutput:
    """
    Validate a broadcast request and snapshot its recipients.

    Active subscribers missing an unsubscribe token get one here so every
    newsletter carries a working unsubscribe link.
    """
    subject = inp.subject.strip() if inp.subject else ""
    content = inp.content.strip() if inp.content else ""
    if not subject or not content:
        return BroadcastOutput(
            success=False,
            errors=[ValidationError(MISSING_FIELD, "Subject and content are required")],
        )

    if store is None:
        return BroadcastOutput(
            success=False,
            errors=[ValidationError(STORE_UNAVAILABLE, "Service temporarily unavailable")],
        )

    try:
        recipients: list[Recipient] = []
        for subscriber in store.list_active():
            if not subscriber.unsubscribe_token:
                subscriber = subscriber.with_changes(unsubscribe_token=generate_token())
                store.put_subscriber(subscriber)
            recipients.append(Recipient(subscriber.email, subscriber.unsubscribe_token))
    except KVStoreError:
        logger.exception("Store failure while loading broadcast recipients")
        return BroadcastOutput(
            success=False,
            errors=[
                ValidationError(STORE_FAILURE, "Failed to send newsletter. Please try again.")
            ],
        )

    if not recipients:
        return BroadcastOutput(
            success=False,
            errors=[ValidationError(NO_ACTIVE_SUBSCRIBERS, "No active subscribers found")],
        )

    return BroadcastOutput(
        success=True,
        plan=BroadcastPlan(subject=subject, content=content, recipients=recipients),
    )


def _deliver(
    index: int,
    recipient: Recipient,
    plan: BroadcastPlan,
    sender: NewsletterSenderPort,
    policy: BroadcastPolicy,
    started: float,
    sleep: SleepPort,
    monotonic: MonotonicPort,
) -> DeliveryOutcome:
    # Anchored to the broadcast start, not to when a worker picks the task up.
    delay = started + stagger_delay(index, policy.stagger_ms) - monotonic()
    if delay > 0:
        sleep(delay)
    try:
        result = sender.send_newsletter(
            recipient.email, plan.subject, plan.content, recipient.unsubscribe_token
        )
    except Exception as e:
        logger.exception("Newsletter send to %s raised", recipient.email)
        return DeliveryOutcome(recipient.email, success=False, error=str(e))

    if not result.success:
        logger.error(
            "Failed to send newsletter (%s) to %s: %s",
            result.provider,
            recipient.email,
            result.error,
        )
    return DeliveryOutcome(
        recipient.email,
        success=result.success,
        message_id=result.message_id,
        error=result.error,
    )


def dispatch_broadcast(
    plan: BroadcastPlan,
    sender: NewsletterSenderPort,
    policy: BroadcastPolicy | None = None,
    sleep: SleepPort = time.sleep,
    monotonic: MonotonicPort = time.monotonic,
) -> BroadcastSummary:
    """
    Send ``plan`` to every recipient and wait for the whole batch.

    Runs after the response (FastAPI background task); the returned summary
    is only logged.
    """
    cfg = policy or BroadcastPolicy()
    logger.info("Newsletter %r: sending to %d subscribers", plan.subject, plan.total)

    workers = max(1, min(cfg.max_workers, plan.total))
    started = monotonic()
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="broadcast") as pool:
        futures = [
            pool.submit(
                _deliver, index, recipient, plan, sender, cfg, started, sleep, monotonic
            )
            for index, recipient in enumerate(plan.recipients)
        ]
        outcomes = [future.result() for future in futures]

    sent = sum(1 for o in outcomes if o.success)
    summary = BroadcastSummary(
        total=plan.total,
        sent=sent,
        failed=plan.total - sent,
        outcomes=outcomes,
    )
    logger.info(
        "Newsletter %r sent: %d successful, %d failed",
        plan.subject,
        summary.sent,
        summary.failed,
    )
    return summary


def run(
    inp: BroadcastInput,
    *,
    store: SubscriberStore | None,
    sender: NewsletterSenderPort,
    policy: BroadcastPolicy | None = None,
    sleep: SleepPort = time.sleep,
    monotonic: MonotonicPort = time.monotonic,
) -> tuple[BroadcastOutput, BroadcastSummary | None]:
    """
    Prepare and dispatch in one call (synchronous).

    The HTTP route splits these two steps around the response instead.
    """
    out = run_prepare_broadcast(inp, store)
    if not out.success or out.plan is None:
        return out, None
    return out, dispatch_broadcast(out.plan, sender, policy, sleep, monotonic)
