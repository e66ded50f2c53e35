from pydantic import BaseModel, ConfigDict, Field

from optin.components.broadcast.models import BroadcastPolicy
from optin.components.subscribers.models import SubscriberPolicy


class StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class TokenRules(StrictModel):
    confirmation_expiry_hours: int = Field(default=24, ge=1)
    spent_token_ttl_days: int = Field(default=30, ge=1)


class SessionRules(StrictModel):
    ttl_hours: int = Field(default=24, ge=1)


class BroadcastRules(StrictModel):
    stagger_ms: int = Field(default=50, ge=0)
    max_workers: int = Field(default=8, ge=1, le=64)


class BulkImportRules(StrictModel):
    error_limit: int = Field(default=10, ge=0)


class AdminListRules(StrictModel):
    default_limit: int = Field(default=20, ge=1)
    max_limit: int = Field(default=100, ge=1)


class Rules(StrictModel):
    tokens: TokenRules = Field(default_factory=TokenRules)
    sessions: SessionRules = Field(default_factory=SessionRules)
    broadcast: BroadcastRules = Field(default_factory=BroadcastRules)
    bulk_import: BulkImportRules = Field(default_factory=BulkImportRules)
    admin_list: AdminListRules = Field(default_factory=AdminListRules)

    def subscriber_policy(self) -> SubscriberPolicy:
        return SubscriberPolicy(
            confirmation_token_expiry_hours=self.tokens.confirmation_expiry_hours,
            bulk_import_error_limit=self.bulk_import.error_limit,
            spent_token_ttl_days=self.tokens.spent_token_ttl_days,
            list_default_limit=self.admin_list.default_limit,
            list_max_limit=self.admin_list.max_limit,
        )

    def broadcast_policy(self) -> BroadcastPolicy:
        return BroadcastPolicy(
            stagger_ms=self.broadcast.stagger_ms,
            max_workers=self.broadcast.max_workers,
        )
