"""Attendee entity model."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from eventlane.models.event import Event


class AttendeeStatus(str, Enum):
    """Attendance status values."""

    CONFIRMED = "confirmed"
    WAITLIST = "waitlist"
    CANCELLED = "cancelled"


class Attendee(SQLModel, table=True):
    """Event attendee database model (RSVPs and ticket holders)."""

    __tablename__ = "event_attendees"

    id: int | None = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="events.id", index=True)
    user_id: int | None = Field(default=None, foreign_key="users.id")
    name: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=255, index=True)
    status: AttendeeStatus = Field(default=AttendeeStatus.CONFIRMED, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    promoted_at: datetime | None = Field(default=None)

    event: "Event" = Relationship(back_populates="attendees")


class AttendeeResponse(SQLModel):
    """Schema for attendee response."""

    id: int
    event_id: int
    name: str
    email: str
    status: AttendeeStatus
    created_at: datetime
    promoted_at: datetime | None

    model_config = {"from_attributes": True}


class WaitlistResponse(SQLModel):
    """Schema for an event's waitlist in FIFO order."""

    event_id: int
    attendees: list[AttendeeResponse]
    total: int


class PromotionResponse(SQLModel):
    """Schema for attendees moved off a waitlist."""

    event_id: int
    promoted: list[AttendeeResponse]
    total: int
