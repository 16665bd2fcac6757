"""Waitlist invite worker: offers a freed spot to a waitlisted attendee."""

from datetime import datetime

from sqlmodel import Session

from eventlane.jobs.errors import EntityNotFoundError
from eventlane.jobs.types import WaitlistInviteJob
from eventlane.models.attendee import Attendee
from eventlane.models.dispatch import NotificationType
from eventlane.services.dispatch import DispatchLedger, hash_recipient
from eventlane.services.invite_tokens import create_invite_token
from eventlane.workers.automation import AutomationWorker
from eventlane.workers.formatting import base_event_context, format_time


class WaitlistInviteWorker(AutomationWorker):
    """Sends the waitlist_invite message with a signed, expiring claim link."""

    notification_types = (NotificationType.WAITLIST_INVITE,)
    job_model = WaitlistInviteJob

    def deliver(self, session: Session, job: WaitlistInviteJob, now: datetime) -> None:
        ledger = DispatchLedger(session)
        event = self.load_event(session, job.event_id)

        attendee = session.get(Attendee, job.attendee_id)
        if attendee is None or attendee.event_id != event.id:
            raise EntityNotFoundError("Attendee not found")
        if not attendee.email:
            raise EntityNotFoundError("Attendee email not found")

        recipient_hash = hash_recipient(attendee.email)
        self.ensure_not_sent(ledger, event.id, NotificationType.WAITLIST_INVITE, recipient_hash)
        self.ensure_event_open(session, event, now)

        token, expires_at = create_invite_token(attendee.id, event.id, now=now)

        context = base_event_context(event)
        context["invite_url"] = f"{self.settings.SITE_BASE_URL}/events/{event.id}/waitlist/claim/{token}"
        context["expires_at"] = format_time(expires_at)

        self.send(
            session,
            job,
            event.id,
            recipient_hash,
            "waitlist_invite",
            attendee.email,
            context,
            audit_metadata={"attendee_id": attendee.id, "expires_at": expires_at.isoformat()},
        )
