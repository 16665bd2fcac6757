"""Reminder worker: tells attendees that an event starts soon.

One class serves both reminder queues; the instance is bound to either
reminder_24h or reminder_2h.
"""

from datetime import datetime

from sqlmodel import Session

from eventlane.config import Settings
from eventlane.jobs.types import ReminderJob
from eventlane.models.dispatch import NotificationType
from eventlane.services.dispatch import DispatchLedger, hash_recipient
from eventlane.services.messaging import Messenger
from eventlane.workers.automation import AutomationWorker
from eventlane.workers.formatting import base_event_context, format_date, format_time

REMINDER_LABELS = {
    NotificationType.REMINDER_24H: "24h",
    NotificationType.REMINDER_2H: "2h",
}


class ReminderWorker(AutomationWorker):
    """Sends event_reminder_24h / event_reminder_2h messages."""

    job_model = ReminderJob

    def __init__(
        self,
        kind: NotificationType = NotificationType.REMINDER_24H,
        batch_size: int = 50,
        max_retries: int = 3,
        messenger: Messenger | None = None,
        settings: Settings | None = None,
    ) -> None:
        if kind not in REMINDER_LABELS:
            raise ValueError(f"{kind} is not a reminder kind")
        super().__init__(
            batch_size=batch_size,
            max_retries=max_retries,
            messenger=messenger,
            settings=settings,
        )
        self.kind = kind
        self.notification_types = (kind,)

    @property
    def worker_name(self) -> str:
        return f"ReminderWorker[{REMINDER_LABELS[self.kind]}]"

    def deliver(self, session: Session, job: ReminderJob, now: datetime) -> None:
        ledger = DispatchLedger(session)
        event = self.load_event(session, job.event_id)

        recipient_hash = hash_recipient(job.recipient_email)
        self.ensure_not_sent(ledger, event.id, self.kind, recipient_hash)
        self.ensure_event_open(session, event, now)

        label = REMINDER_LABELS[self.kind]
        context = base_event_context(event)
        context["reminder_type"] = label
        if event.event_start is not None:
            context["event_start_date"] = format_date(event.event_start)
            context["event_start_time"] = format_time(event.event_start)
        if event.venue_name:
            context["venue"] = event.venue_name

        self.send(
            session,
            job,
            event.id,
            recipient_hash,
            f"event_reminder_{label}",
            job.recipient_email,
            context,
        )
