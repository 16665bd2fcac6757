"""AutomationDispatch entity model: the idempotency ledger."""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column, Index, Text
from sqlmodel import Field, SQLModel


class NotificationType(str, Enum):
    """Closed set of automated notification kinds."""

    SALES_OPEN = "sales_open"
    REMINDER_24H = "reminder_24h"
    REMINDER_2H = "reminder_2h"
    WAITLIST_INVITE = "waitlist_invite"
    EVENT_CANCELLED = "event_cancelled"
    EXPORT_READY_CSV = "export_ready_csv"
    EXPORT_READY_ICS = "export_ready_ics"
    WEEKLY_CATEGORY_DIGEST = "weekly_category_digest"


class DispatchStatus(str, Enum):
    """Dispatch status values.

    SCHEDULED is the only non-terminal state. Nothing prevents a terminal
    record from being transitioned again.
    """

    SCHEDULED = "scheduled"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class AutomationDispatch(SQLModel, table=True):
    """One attempted delivery of one notification to one recipient.

    Recipients are stored only as a SHA-256 hash. event_id is NULL for
    account-wide notifications such as the weekly digest.
    """

    __tablename__ = "automation_dispatch"
    __table_args__ = (
        Index(
            "ix_automation_dispatch_lookup",
            "event_id",
            "notification_type",
            "recipient_hash",
            "status",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    event_id: int | None = Field(default=None, index=True)
    notification_type: NotificationType = Field(index=True)
    recipient_hash: str = Field(max_length=64)
    scheduled_for: datetime = Field(default_factory=datetime.utcnow, index=True)
    status: DispatchStatus = Field(default=DispatchStatus.SCHEDULED, index=True)
    attempts: int = Field(default=0)
    last_error: str | None = Field(default=None, sa_column=Column(Text))
    meta: dict[str, Any] | None = Field(default=None, sa_column=Column("metadata", JSON))
    sent_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class DispatchResponse(SQLModel):
    """Schema for dispatch record response."""

    id: int
    event_id: int | None
    notification_type: NotificationType
    recipient_hash: str
    scheduled_for: datetime
    status: DispatchStatus
    attempts: int
    last_error: str | None
    meta: dict[str, Any] | None
    sent_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class DispatchListResponse(SQLModel):
    """Schema for dispatch list response."""

    dispatches: list[DispatchResponse]
    total: int
