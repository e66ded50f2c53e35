"""
Subscribers component.

Subscriber store accessor and the double opt-in lifecycle state machine.
"""

from optin.components.subscribers.component import (
    EMAIL_REGEX,
    activate_subscriber,
    deactivate_subscriber,
    mask_email,
    new_pending_subscriber,
    paginate,
    run,
    run_bulk_import,
    run_confirm,
    run_count,
    run_force_unsubscribe,
    run_list_subscribers,
    run_resend_confirmation,
    run_subscribe,
    run_unsubscribe,
    validate_email,
)
from optin.components.subscribers.models import (
    VALID_TRANSITIONS,
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
    format_timestamp,
    parse_timestamp,
)
from optin.components.subscribers.ports import (
    ClockPort,
    KVStoreError,
    KVStorePort,
    SubscriberEmailPort,
)
from optin.components.subscribers.store import (
    COUNT_KEY,
    SUBSCRIBER_PREFIX,
    SubscriberStore,
    normalize_email,
    subscriber_key,
)

__all__ = [
    # Entry point
    "run",
    "run_subscribe",
    "run_confirm",
    "run_resend_confirmation",
    "run_unsubscribe",
    "run_force_unsubscribe",
    "run_bulk_import",
    "run_list_subscribers",
    "run_count",
    # Functions
    "EMAIL_REGEX",
    "validate_email",
    "mask_email",
    "new_pending_subscriber",
    "activate_subscriber",
    "deactivate_subscriber",
    "paginate",
    "format_timestamp",
    "parse_timestamp",
    # Store
    "SubscriberStore",
    "SUBSCRIBER_PREFIX",
    "COUNT_KEY",
    "normalize_email",
    "subscriber_key",
    # Models
    "Subscriber",
    "SubscriberStatus",
    "SubscriberSummary",
    "SubscriberPolicy",
    "Pagination",
    "VALID_TRANSITIONS",
    "can_transition",
    # Inputs
    "SubscribeInput",
    "ConfirmInput",
    "ResendConfirmationInput",
    "UnsubscribeInput",
    "ForceUnsubscribeInput",
    "BulkImportInput",
    "ListSubscribersInput",
    # Outputs
    "ValidateEmailOutput",
    "SubscribeOutput",
    "ConfirmOutput",
    "ResendConfirmationOutput",
    "UnsubscribeOutput",
    "BulkImportOutput",
    "ListSubscribersOutput",
    "CountOutput",
    "ValidationError",
    # Ports
    "KVStorePort",
    "KVStoreError",
    "ClockPort",
    "SubscriberEmailPort",
]
