"""
Broadcast component.

Newsletter fan-out to every active subscriber.
"""

from optin.components.broadcast.component import (
    dispatch_broadcast,
    run,
    run_prepare_broadcast,
    stagger_delay,
)
from optin.components.broadcast.models import (
    BroadcastInput,
    BroadcastOutput,
    BroadcastPlan,
    BroadcastPolicy,
    BroadcastSummary,
    DeliveryOutcome,
    Recipient,
)
from optin.components.broadcast.ports import MonotonicPort, NewsletterSenderPort, SleepPort

__all__ = [
    "run",
    "run_prepare_broadcast",
    "dispatch_broadcast",
    "stagger_delay",
    "BroadcastInput",
    "BroadcastOutput",
    "BroadcastPlan",
    "BroadcastPolicy",
    "BroadcastSummary",
    "DeliveryOutcome",
    "Recipient",
    "MonotonicPort",
    "NewsletterSenderPort",
    "SleepPort",
]
