"""Event entity model."""

from datetime import datetime
from typing import TYPE_CHECKING, Literal

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from eventlane.models.attendee import Attendee
    from eventlane.models.user import User


class Event(SQLModel, table=True):
    """Event database model.

    Timing fields are naive UTC datetimes. Missing sales windows fall back
    to created_at / event_end when the state is resolved.
    """

    __tablename__ = "events"

    id: int | None = Field(default=None, primary_key=True)
    owner_id: int = Field(foreign_key="users.id", index=True)
    title: str = Field(max_length=255)
    category: str | None = Field(default=None, max_length=100, index=True)
    published: bool = Field(default=True, index=True)
    # Manual override: "cancelled" or "archived"
    state_override: str | None = Field(default=None, max_length=20)

    sales_start: datetime | None = Field(default=None, index=True)
    sales_end: datetime | None = Field(default=None)
    event_start: datetime | None = Field(default=None, index=True)
    event_end: datetime | None = Field(default=None)
    venue_name: str | None = Field(default=None, max_length=255)

    # NULL means the organiser never touched the setting (treated as enabled)
    enable_reminders: bool | None = Field(default=None)
    waitlist_auto_invite: bool | None = Field(default=None)
    capacity: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)

    owner: "User" = Relationship(back_populates="events")
    attendees: list["Attendee"] = Relationship(
        back_populates="event",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class ExportNotificationRequest(SQLModel):
    """Schema for announcing a finished attendee export."""

    export_type: Literal["csv", "ics"]
    file_url: str = Field(min_length=1, max_length=2048)


class CancelEventRequest(SQLModel):
    """Schema for cancelling an event."""

    reason: str | None = Field(default=None, max_length=1000)


class TriggerResponse(SQLModel):
    """Schema for the result of an on-demand notification trigger."""

    event_id: int
    queued: int
