"""Event state resolution from timing, capacity and manual overrides."""

from datetime import datetime
from enum import Enum

from sqlmodel import Session

from eventlane.models.event import Event
from eventlane.services.attendance import AttendanceManager


class EventState(str, Enum):
    """Derived lifecycle state of an event."""

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    LIVE = "live"
    SOLD_OUT = "sold_out"
    ENDED = "ended"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


# States in which no further attendee-facing notification makes sense
CLOSED_STATES = frozenset({EventState.CANCELLED, EventState.ENDED})


class EventStateResolver:
    """Computes an event's state as of a given instant.

    Order of precedence:
    1. Manual override (cancelled / archived)
    2. Unpublished -> draft
    3. Before sales start -> scheduled
    4. After event end -> ended
    5. No capacity left -> sold_out
    6. Otherwise live
    """

    def __init__(self, session: Session, now: datetime | None = None) -> None:
        self.session = session
        self.now = now or datetime.utcnow()
        self._attendance = AttendanceManager(session)

    def resolve_state(self, event: Event) -> EventState:
        if event.state_override in (EventState.CANCELLED.value, EventState.ARCHIVED.value):
            return EventState(event.state_override)

        if not event.published:
            return EventState.DRAFT

        sales_start = self.get_sales_start(event)
        if sales_start is not None and self.now < sales_start:
            return EventState.SCHEDULED

        if event.event_end is not None and self.now > event.event_end:
            return EventState.ENDED

        if self._attendance.get_remaining_capacity(event) == 0:
            return EventState.SOLD_OUT

        return EventState.LIVE

    def get_sales_start(self, event: Event) -> datetime | None:
        """Sales start, defaulting to the event's creation time."""
        return event.sales_start or event.created_at

    def get_sales_end(self, event: Event) -> datetime | None:
        """Sales end, defaulting to the event end."""
        return event.sales_end or event.event_end
