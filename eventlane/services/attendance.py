"""Attendance and waitlist management.

Waitlists are FIFO: attendees are ordered by created_at ascending and the
earliest registration is promoted first. Promotion relies on the
database session for consistency; there is no row locking.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlmodel import Session, select

from eventlane.models.attendee import Attendee, AttendeeStatus
from eventlane.models.event import Event

logger = logging.getLogger(__name__)


class AttendanceManager:
    """Queries and status changes for event attendees."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_attendees_for_event(
        self,
        event_id: int,
        status: AttendeeStatus | None = None,
    ) -> list[Attendee]:
        """List attendees for an event, earliest registration first."""
        query = select(Attendee).where(Attendee.event_id == event_id)
        if status is not None:
            query = query.where(Attendee.status == status)
        query = query.order_by(Attendee.created_at, Attendee.id)
        return list(self.session.exec(query).all())

    def get_attendee_count(
        self,
        event_id: int,
        statuses: list[AttendeeStatus] | None = None,
    ) -> int:
        """Count attendees for an event (confirmed only by default)."""
        statuses = statuses if statuses is not None else [AttendeeStatus.CONFIRMED]
        query = select(func.count()).select_from(Attendee).where(Attendee.event_id == event_id)
        if statuses:
            query = query.where(Attendee.status.in_(statuses))
        return self.session.exec(query).one()

    def get_remaining_capacity(self, event: Event) -> int | None:
        """Spots left, or None when the event has no capacity limit."""
        if not event.capacity or event.capacity <= 0:
            return None
        return max(0, event.capacity - self.get_attendee_count(event.id))

    def promote_attendee(self, attendee: Attendee, now: datetime | None = None) -> Attendee:
        """Move one attendee off the waitlist."""
        attendee.status = AttendeeStatus.CONFIRMED
        attendee.promoted_at = now or datetime.utcnow()
        self.session.add(attendee)
        self.session.flush()

        logger.info(
            f"Promoted attendee {attendee.id} from waitlist",
            extra={"attendee_id": attendee.id, "event_id": attendee.event_id},
        )
        return attendee

    def promote_from_waitlist(self, event_id: int) -> Attendee | None:
        """Promote the earliest waitlisted attendee, if any."""
        attendee = self.session.exec(
            select(Attendee)
            .where(Attendee.event_id == event_id)
            .where(Attendee.status == AttendeeStatus.WAITLIST)
            .order_by(Attendee.created_at, Attendee.id)
            .limit(1)
        ).first()

        if attendee is None:
            return None
        return self.promote_attendee(attendee)


@dataclass
class WaitlistAnalytics:
    """Waitlist statistics for one event."""

    total_waitlist: int
    total_promoted: int
    conversion_rate: float
    average_wait_time: float
    current_waitlist: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_waitlist": self.total_waitlist,
            "total_promoted": self.total_promoted,
            "conversion_rate": self.conversion_rate,
            "average_wait_time": self.average_wait_time,
            "current_waitlist": self.current_waitlist,
        }


class WaitlistManager:
    """Waitlist operations built on AttendanceManager."""

    def __init__(self, session: Session, attendance: AttendanceManager | None = None) -> None:
        self.session = session
        self.attendance = attendance or AttendanceManager(session)

    def get_waitlist(self, event_id: int) -> list[Attendee]:
        """Waitlisted attendees in promotion order."""
        return self.attendance.get_attendees_for_event(event_id, AttendeeStatus.WAITLIST)

    def get_waitlist_position(self, attendee: Attendee) -> int | None:
        """1-based waitlist position, or None if not waitlisted."""
        if attendee.status != AttendeeStatus.WAITLIST:
            return None

        for position, waitlisted in enumerate(self.get_waitlist(attendee.event_id), start=1):
            if waitlisted.id == attendee.id:
                return position
        return None

    def get_waitlist_count(self, event_id: int) -> int:
        return self.attendance.get_attendee_count(event_id, [AttendeeStatus.WAITLIST])

    def promote_multiple(self, event_id: int, spots: int = 1) -> list[Attendee]:
        """Fill up to `spots` places from the waitlist, FIFO."""
        promoted = []
        for _ in range(spots):
            attendee = self.attendance.promote_from_waitlist(event_id)
            if attendee is None:
                break
            promoted.append(attendee)
        return promoted

    def is_waitlist_auto_invite_enabled(self, event: Event) -> bool:
        """Auto-invite is on unless the organiser switched it off."""
        return event.waitlist_auto_invite is not False

    def get_waitlist_analytics(self, event_id: int) -> WaitlistAnalytics:
        """Conversion and wait-time statistics for an event's waitlist.

        Average wait time is reported in hours.
        """
        attendees = self.attendance.get_attendees_for_event(event_id)

        current = 0
        promoted = 0
        total_wait_seconds = 0.0
        for attendee in attendees:
            if attendee.promoted_at is not None:
                promoted += 1
                if attendee.promoted_at > attendee.created_at:
                    total_wait_seconds += (attendee.promoted_at - attendee.created_at).total_seconds()
            elif attendee.status == AttendeeStatus.WAITLIST:
                current += 1

        total_ever = current + promoted
        conversion_rate = round(promoted / total_ever * 100, 1) if total_ever else 0.0
        average_wait = round(total_wait_seconds / promoted / 3600, 1) if promoted else 0.0

        return WaitlistAnalytics(
            total_waitlist=total_ever,
            total_promoted=promoted,
            conversion_rate=conversion_rate,
            average_wait_time=average_wait,
            current_waitlist=current,
        )
