"""Sales-open worker: tells the event owner that ticket sales have started."""

from datetime import datetime

from sqlmodel import Session

from eventlane.jobs.errors import EntityNotFoundError
from eventlane.jobs.types import SalesOpenJob
from eventlane.models.dispatch import NotificationType
from eventlane.models.user import User
from eventlane.services.dispatch import DispatchLedger, hash_recipient
from eventlane.services.event_state import EventStateResolver
from eventlane.workers.automation import AutomationWorker
from eventlane.workers.formatting import base_event_context, format_datetime


class SalesOpenWorker(AutomationWorker):
    """Sends the sales_open message to the event owner."""

    notification_types = (NotificationType.SALES_OPEN,)
    job_model = SalesOpenJob

    def deliver(self, session: Session, job: SalesOpenJob, now: datetime) -> None:
        ledger = DispatchLedger(session)
        event = self.load_event(session, job.event_id)

        # Keyed on the owner id, matching the scanner
        owner_hash = hash_recipient(str(event.owner_id))
        self.ensure_not_sent(ledger, event.id, NotificationType.SALES_OPEN, owner_hash)

        owner = session.get(User, event.owner_id)
        if owner is None or not owner.email:
            raise EntityNotFoundError("Vendor email not found")

        self.ensure_event_open(session, event, now)

        context = base_event_context(event)
        sales_start = EventStateResolver(session, now).get_sales_start(event)
        if sales_start is not None:
            context["sales_start"] = format_datetime(sales_start)

        self.send(session, job, event.id, owner_hash, "sales_open", owner.email, context)
