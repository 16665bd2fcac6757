"""AutomationAuditLog entity model for append-only automation records."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from eventlane.models.dispatch import NotificationType


class AutomationAuditLog(SQLModel, table=True):
    """Audit log database model for immutable automation records.

    Rows are written once and never updated. They are not consulted for
    control flow.
    """

    __tablename__ = "automation_audit"

    id: int | None = Field(default=None, primary_key=True)
    event_id: int | None = Field(default=None, index=True)
    action: str = Field(max_length=50, index=True)
    notification_type: NotificationType | None = Field(default=None)
    recipient_hash: str | None = Field(default=None, max_length=64)
    meta: dict[str, Any] | None = Field(default=None, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class AuditLogResponse(SQLModel):
    """Schema for audit log response."""

    id: int
    event_id: int | None
    action: str
    notification_type: NotificationType | None
    recipient_hash: str | None
    meta: dict[str, Any] | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogListResponse(SQLModel):
    """Schema for audit log list response."""

    entries: list[AuditLogResponse]
    total: int
