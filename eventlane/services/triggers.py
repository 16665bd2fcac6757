"""On-demand notification triggers.

Some notifications are not discovered by the scanner but fired by an
action: an export finished, an organiser cancelled an event, or capacity
freed up on a full event. Each trigger applies the same per-recipient
rule as the scanner (skip if already sent, else ledger record + job in
one commit).
"""

import logging
from datetime import datetime
from typing import Any

from sqlmodel import Session, select

from eventlane.jobs.queue import DatabaseQueue
from eventlane.jobs.types import (
    EventCancelledJob,
    ExportReadyJob,
    WaitlistInviteJob,
    export_kind,
)
from eventlane.models.attendee import Attendee, AttendeeStatus
from eventlane.models.dispatch import DispatchStatus, NotificationType
from eventlane.models.event import Event
from eventlane.models.user import User
from eventlane.services.attendance import WaitlistManager
from eventlane.services.dispatch import DispatchLedger, hash_recipient
from eventlane.services.event_state import CLOSED_STATES, EventState, EventStateResolver

logger = logging.getLogger(__name__)

EXPORT_TYPES = ("csv", "ics")


class NotificationTriggers:
    """Queues event-driven automation notifications."""

    def __init__(
        self,
        session: Session,
        ledger: DispatchLedger | None = None,
        queue: DatabaseQueue | None = None,
    ) -> None:
        self.session = session
        self.ledger = ledger or DispatchLedger(session)
        self.queue = queue or DatabaseQueue(session)

    def queue_export_notification(self, event: Event, export_type: str, file_url: str) -> bool:
        """Tell the event owner that an export is ready.

        Args:
            event: The exported event
            export_type: "csv" or "ics"
            file_url: Download link for the export

        Returns:
            bool: True if a notification was queued, False if it was
            already sent, the owner has no email, or queuing failed
        """
        event_id = event.id
        try:
            if export_type not in EXPORT_TYPES:
                raise ValueError(f"Unsupported export type: {export_type}")

            owner = self.session.get(User, event.owner_id)
            if owner is None or not owner.email:
                return False

            notification_type = export_kind(export_type)
            owner_hash = hash_recipient(owner.email)
            if self.ledger.is_already_sent(event_id, notification_type, owner_hash):
                return False

            metadata = {"export_type": export_type, "file_url": file_url}
            dispatch_id = self.ledger.create_dispatch(
                event_id,
                notification_type,
                owner_hash,
                metadata=metadata,
            )
            self.queue.enqueue(
                ExportReadyJob(
                    kind=notification_type.value,
                    dispatch_id=dispatch_id,
                    event_id=event_id,
                    export_type=export_type,
                    file_url=file_url,
                )
            )
            self.session.commit()
            return True

        except Exception as e:
            self.session.rollback()
            logger.error(
                f"Failed to queue export notification: {e}",
                extra={"event_id": event_id, "export_type": export_type},
            )
            return False

    def notify_event_cancelled(self, event: Event, reason: str | None = None) -> int:
        """Cancel an event and queue a cancellation notice per attendee.

        Returns:
            int: Number of notifications queued
        """
        event.state_override = EventState.CANCELLED.value
        self.session.add(event)
        self.session.commit()

        attendees = self.session.exec(
            select(Attendee)
            .where(Attendee.event_id == event.id)
            .where(Attendee.status != AttendeeStatus.CANCELLED)
            .order_by(Attendee.created_at, Attendee.id)
        ).all()

        metadata: dict[str, Any] | None = {"cancel_reason": reason} if reason else None
        queued = 0
        seen: set[str] = set()
        for attendee in attendees:
            email = (attendee.email or "").strip()
            if not email:
                continue

            recipient_hash = hash_recipient(email)
            if recipient_hash in seen:
                continue
            seen.add(recipient_hash)

            if self.ledger.is_already_sent(event.id, NotificationType.EVENT_CANCELLED, recipient_hash):
                continue

            dispatch_id = self.ledger.create_dispatch(
                event.id,
                NotificationType.EVENT_CANCELLED,
                recipient_hash,
                metadata=metadata,
            )
            self.queue.enqueue(
                EventCancelledJob(
                    dispatch_id=dispatch_id,
                    event_id=event.id,
                    recipient_email=email,
                    cancel_reason=reason,
                )
            )
            self.session.commit()
            queued += 1

        logger.info(
            f"Queued {queued} cancellation notices for event {event.id}",
            extra={"event_id": event.id, "queued": queued},
        )
        return queued

    def queue_waitlist_invites(self, event: Event, spots: int = 1, now: datetime | None = None) -> int:
        """Invite the first `spots` waitlisted attendees, FIFO.

        Attendees with a pending or delivered invite are passed over. Nothing is
        queued for cancelled or ended events.

        Returns:
            int: Number of invites queued
        """
        if spots < 1:
            return 0

        resolver = EventStateResolver(self.session, now)
        state = resolver.resolve_state(event)
        if state in CLOSED_STATES:
            logger.info(
                f"Not inviting waitlist for event {event.id}: event is {state.value}",
                extra={"event_id": event.id, "state": state.value},
            )
            return 0

        # Pending invites count as taken so repeated calls move down the list
        invited = {
            dispatch.recipient_hash
            for dispatch in self.ledger.get_dispatches(event.id, NotificationType.WAITLIST_INVITE)
            if dispatch.status in (DispatchStatus.SCHEDULED, DispatchStatus.SENT)
        }

        queued = 0
        for attendee in WaitlistManager(self.session).get_waitlist(event.id):
            if queued >= spots:
                break

            email = (attendee.email or "").strip()
            if not email:
                continue

            recipient_hash = hash_recipient(email)
            if recipient_hash in invited:
                continue
            invited.add(recipient_hash)

            dispatch_id = self.ledger.create_dispatch(
                event.id,
                NotificationType.WAITLIST_INVITE,
                recipient_hash,
                metadata={"attendee_id": attendee.id},
            )
            self.queue.enqueue(
                WaitlistInviteJob(
                    dispatch_id=dispatch_id,
                    event_id=event.id,
                    attendee_id=attendee.id,
                )
            )
            self.session.commit()
            queued += 1

        logger.info(
            f"Queued {queued} waitlist invites for event {event.id}",
            extra={"event_id": event.id, "spots": spots, "queued": queued},
        )
        return queued
