"""Weekly digest worker: upcoming events in the categories a user follows."""

from datetime import datetime, timedelta

from sqlmodel import Session, select

from eventlane.jobs.errors import EntityNotFoundError, IneligibleStateError
from eventlane.jobs.types import WeeklyDigestJob
from eventlane.models.dispatch import NotificationType
from eventlane.models.event import Event
from eventlane.models.user import User
from eventlane.services.dispatch import DispatchLedger, hash_recipient
from eventlane.workers.automation import AutomationWorker
from eventlane.workers.formatting import event_url, format_datetime

DIGEST_PERIOD = timedelta(days=7)
MAX_DIGEST_EVENTS = 20


class WeeklyDigestWorker(AutomationWorker):
    """Sends the weekly_category_digest message. Account-wide (no event)."""

    notification_types = (NotificationType.WEEKLY_CATEGORY_DIGEST,)
    job_model = WeeklyDigestJob

    def deliver(self, session: Session, job: WeeklyDigestJob, now: datetime) -> None:
        ledger = DispatchLedger(session)

        user = session.get(User, job.user_id)
        if user is None or not user.is_active or not user.email:
            raise EntityNotFoundError("User not found or inactive")

        recipient_hash = hash_recipient(user.email)
        self.ensure_not_sent(
            ledger,
            None,
            NotificationType.WEEKLY_CATEGORY_DIGEST,
            recipient_hash,
            since=now - DIGEST_PERIOD,
            reason="Already sent this week",
        )

        events = self.upcoming_events(session, user.followed_categories or [], now)
        if not events:
            raise IneligibleStateError("No upcoming events in followed categories")

        context = {
            "user_name": user.name or user.email,
            "categories": sorted(user.followed_categories),
            "event_count": len(events),
            "events": [
                {
                    "title": event.title,
                    "url": event_url(event),
                    "category": event.category,
                    "event_start": format_datetime(event.event_start),
                    "venue": event.venue_name,
                }
                for event in events
            ],
        }

        self.send(
            session,
            job,
            None,
            recipient_hash,
            "weekly_category_digest",
            user.email,
            context,
            audit_metadata={"event_count": len(events)},
        )

    def upcoming_events(self, session: Session, categories: list[str], now: datetime) -> list[Event]:
        """Published, non-cancelled events starting within the next week."""
        if not categories:
            return []

        events = session.exec(
            select(Event)
            .where(Event.published == True)  # noqa: E712
            .where(Event.category.in_(categories))
            .where(Event.event_start != None)  # noqa: E711
            .where(Event.event_start >= now)
            .where(Event.event_start <= now + DIGEST_PERIOD)
            .order_by(Event.event_start, Event.id)
            .limit(MAX_DIGEST_EVENTS)
        ).all()
        return [event for event in events if event.state_override is None]
