from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import NoReturn

from fastapi import HTTPException, status
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from optin.components.subscribers import (
    Pagination,
    SubscriberSummary,
    ValidationError,
    format_timestamp,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Generic ---
class MessageResponse(BaseModel):
    success: bool
    message: str


class EmailMessageResponse(MessageResponse):
    email: str | None = None


# --- Admin subscribers ---
class SubscriberModel(CamelModel):
    email: str
    subscribed_at: str
    status: str
    confirmed_at: str | None = None
    token_expires_at: str | None = None

    @classmethod
    def from_summary(cls, summary: SubscriberSummary) -> "SubscriberModel":
        return cls(
            email=summary.email,
            subscribed_at=format_timestamp(summary.subscribed_at),
            status=summary.status.value,
            confirmed_at=_ts(summary.confirmed_at),
            token_expires_at=_ts(summary.token_expires_at),
        )


class PaginationModel(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next: bool
    has_previous: bool

    @classmethod
    def from_pagination(cls, p: Pagination) -> "PaginationModel":
        return cls(
            current_page=p.current_page,
            total_pages=p.total_pages,
            total_count=p.total_count,
            limit=p.limit,
            has_next=p.has_next,
            has_previous=p.has_previous,
        )


class SubscriberListResponse(BaseModel):
    success: bool
    subscribers: list[SubscriberModel]
    pagination: PaginationModel


class CountResponse(BaseModel):
    success: bool
    count: int


class BulkImportResults(BaseModel):
    added: int
    skipped: int
    invalid: int
    errors: list[str]


class BulkImportResponse(MessageResponse):
    results: BulkImportResults


# --- Admin newsletter ---
class BroadcastStartedResponse(MessageResponse):
    total: int


def _ts(value: datetime | None) -> str | None:
    return format_timestamp(value) if value else None


def raise_for_errors(
    errors: Sequence[ValidationError],
    status_map: Mapping[str, int],
    fallback: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
) -> NoReturn:
    """Raise an HTTPException for the first error, status chosen by its code."""
    if not errors:
        raise HTTPException(
            status_code=fallback,
            detail="An unexpected error occurred. Please try again.",
        )
    error = errors[0]
    raise HTTPException(
        status_code=status_map.get(error.code, fallback),
        detail=error.message,
    )
