"""Event-cancelled worker: tells attendees an event will not go ahead.

Not gated on event state; the event is expected to be cancelled.
"""

from datetime import datetime

from sqlmodel import Session

from eventlane.jobs.types import EventCancelledJob
from eventlane.models.dispatch import NotificationType
from eventlane.services.dispatch import DispatchLedger, hash_recipient
from eventlane.workers.automation import AutomationWorker
from eventlane.workers.formatting import base_event_context

DEFAULT_CANCEL_REASON = "This event has been cancelled."
REFUND_INFO = "If you purchased tickets, refunds will be processed automatically."


class EventCancelledWorker(AutomationWorker):
    """Sends the event_cancelled message."""

    notification_types = (NotificationType.EVENT_CANCELLED,)
    job_model = EventCancelledJob

    def deliver(self, session: Session, job: EventCancelledJob, now: datetime) -> None:
        ledger = DispatchLedger(session)
        event = self.load_event(session, job.event_id)

        recipient_hash = hash_recipient(job.recipient_email)
        self.ensure_not_sent(ledger, event.id, NotificationType.EVENT_CANCELLED, recipient_hash)

        context = base_event_context(event)
        context["cancel_reason"] = job.cancel_reason or DEFAULT_CANCEL_REASON
        context["refund_info"] = REFUND_INFO

        self.send(
            session,
            job,
            event.id,
            recipient_hash,
            "event_cancelled",
            job.recipient_email,
            context,
            audit_metadata={"cancel_reason": job.cancel_reason},
        )
