"""Automation scanner: finds due notifications and enqueues one job per recipient.

Each scan runs one sweep per notification kind:
1. Query events (or users) whose relevant timestamp falls in the kind's window
2. Re-derive the event state and drop candidates that no longer qualify
3. Resolve recipients, skip those already sent, create a ledger record
   and enqueue a job in the same transaction

The windows are deliberately wider than the scan interval so a missed
cron tick is caught by the next one. Duplicate records created by
overlapping windows are settled by the workers' idempotency re-check.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable

from sqlmodel import Session, select

from eventlane.config import Settings, get_settings
from eventlane.jobs.queue import DatabaseQueue
from eventlane.jobs.types import job_model_for
from eventlane.models.attendee import Attendee, AttendeeStatus
from eventlane.models.dispatch import NotificationType
from eventlane.models.event import Event
from eventlane.models.user import User
from eventlane.services.attendance import WaitlistManager
from eventlane.services.dispatch import DispatchLedger, hash_recipient
from eventlane.services.event_state import CLOSED_STATES, EventState, EventStateResolver
from eventlane.services.state_store import DatabaseStateStore, KeyValueStore

logger = logging.getLogger(__name__)

WEEKLY_DIGEST_WATERMARK = "weekly_digest_last_run"
ONE_WEEK = timedelta(days=7)

# (window start, window end) relative to now, on event_start
REMINDER_WINDOWS: dict[NotificationType, tuple[timedelta, timedelta]] = {
    NotificationType.REMINDER_24H: (timedelta(hours=23), timedelta(hours=25)),
    NotificationType.REMINDER_2H: (timedelta(hours=1), timedelta(hours=3)),
}
SALES_OPEN_WINDOW = timedelta(hours=1)


class ScanStatus(str, Enum):
    """Outcome of one sweep."""

    COMPLETED = "completed"
    SKIPPED = "skipped"  # Gate closed (e.g. not digest day)
    NOT_IMPLEMENTED = "not_implemented"
    FAILED = "failed"


@dataclass
class ScanResult:
    """Result of one sweep.

    Attributes:
        notification_type: Kind the sweep schedules
        status: Outcome of the sweep
        candidates: Events or users examined
        enqueued: Jobs created
        error: Error message when the sweep failed
    """

    notification_type: NotificationType
    status: ScanStatus = ScanStatus.COMPLETED
    candidates: int = 0
    enqueued: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "notification_type": self.notification_type.value,
            "status": self.status.value,
            "candidates": self.candidates,
            "enqueued": self.enqueued,
            "error": self.error,
        }


@dataclass
class ScanReport:
    """Aggregated results of a full scan."""

    scanned_at: datetime
    results: list[ScanResult] = field(default_factory=list)

    @property
    def total_enqueued(self) -> int:
        return sum(result.enqueued for result in self.results)

    @property
    def failed(self) -> list[ScanResult]:
        return [result for result in self.results if result.status == ScanStatus.FAILED]

    def result_for(self, notification_type: NotificationType) -> ScanResult | None:
        for result in self.results:
            if result.notification_type == notification_type:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "scanned_at": self.scanned_at.isoformat(),
            "total_enqueued": self.total_enqueued,
            "results": [result.to_dict() for result in self.results],
        }


def _to_timestamp(moment: datetime) -> int:
    """Naive UTC datetime to epoch seconds."""
    return int(moment.replace(tzinfo=timezone.utc).timestamp())


class AutomationScheduler:
    """Scans for due notifications and enqueues automation jobs.

    All collaborators are passed in; nothing is looked up globally except
    settings when none are given.
    """

    def __init__(
        self,
        session: Session,
        ledger: DispatchLedger | None = None,
        queue: DatabaseQueue | None = None,
        state_store: KeyValueStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.session = session
        self.ledger = ledger or DispatchLedger(session)
        self.queue = queue or DatabaseQueue(session)
        self.state_store = state_store if state_store is not None else DatabaseStateStore(session)
        self.settings = settings or get_settings()

    def scan(self, now: datetime | None = None) -> ScanReport:
        """Run every sweep once.

        A failing sweep is rolled back and recorded; the remaining sweeps
        still run.

        Args:
            now: Scan instant (naive UTC, defaults to current time)

        Returns:
            ScanReport with one ScanResult per sweep
        """
        now = now or datetime.utcnow()
        report = ScanReport(scanned_at=now)

        sweeps: list[tuple[NotificationType, Callable[[datetime], ScanResult]]] = [
            (NotificationType.SALES_OPEN, self.scan_sales_opening),
            (NotificationType.REMINDER_24H, lambda at: self.scan_reminders(NotificationType.REMINDER_24H, at)),
            (NotificationType.REMINDER_2H, lambda at: self.scan_reminders(NotificationType.REMINDER_2H, at)),
            (NotificationType.WAITLIST_INVITE, self.scan_waitlist_invites),
            (NotificationType.WEEKLY_CATEGORY_DIGEST, self.scan_weekly_digests),
        ]

        for notification_type, sweep in sweeps:
            try:
                result = sweep(now)
            except Exception as e:
                self.session.rollback()
                result = ScanResult(
                    notification_type=notification_type,
                    status=ScanStatus.FAILED,
                    error=str(e)[:500],
                )
                logger.error(
                    f"Scan for {notification_type.value} failed",
                    extra={"notification_type": notification_type.value, "error": str(e)},
                    exc_info=True,
                )
            report.results.append(result)

        logger.info("Automation scan complete", extra=report.to_dict())
        return report

    # -------------------------------------------------------------------------
    # Sweeps
    # -------------------------------------------------------------------------

    def scan_sales_opening(self, now: datetime) -> ScanResult:
        """Notify owners of events whose ticket sales opened within the last hour."""
        result = ScanResult(notification_type=NotificationType.SALES_OPEN)
        resolver = EventStateResolver(self.session, now)

        events = self.session.exec(
            select(Event)
            .where(Event.published == True)  # noqa: E712
            .where(Event.sales_start != None)  # noqa: E711
            .where(Event.sales_start >= now - SALES_OPEN_WINDOW)
            .where(Event.sales_start <= now + SALES_OPEN_WINDOW)
            .order_by(Event.id)
        ).all()

        for event in events:
            result.candidates += 1
            if resolver.resolve_state(event) != EventState.LIVE:
                continue

            sales_start = resolver.get_sales_start(event)
            if sales_start is None or sales_start > now:
                continue

            # Owner id, not email: the owner's address may change
            owner_hash = hash_recipient(str(event.owner_id))
            if self._schedule(event.id, NotificationType.SALES_OPEN, owner_hash, now, {"event_id": event.id}):
                result.enqueued += 1
                logger.info(
                    f"Scheduled sales_open notification for event {event.id}",
                    extra={"event_id": event.id},
                )

        return result

    def scan_reminders(self, notification_type: NotificationType, now: datetime) -> ScanResult:
        """Remind confirmed attendees of events starting inside the kind's window."""
        result = ScanResult(notification_type=notification_type)
        resolver = EventStateResolver(self.session, now)
        window_start, window_end = REMINDER_WINDOWS[notification_type]

        events = self.session.exec(
            select(Event)
            .where(Event.published == True)  # noqa: E712
            .where(Event.event_start != None)  # noqa: E711
            .where(Event.event_start >= now + window_start)
            .where(Event.event_start <= now + window_end)
            .order_by(Event.id)
        ).all()

        for event in events:
            result.candidates += 1
            if resolver.resolve_state(event) in CLOSED_STATES:
                continue
            if event.enable_reminders is False:
                continue

            attendees = self.session.exec(
                select(Attendee)
                .where(Attendee.event_id == event.id)
                .where(Attendee.status == AttendeeStatus.CONFIRMED)
                .order_by(Attendee.created_at, Attendee.id)
            ).all()

            seen: set[str] = set()
            for attendee in attendees:
                email = (attendee.email or "").strip()
                if not email:
                    continue

                recipient_hash = hash_recipient(email)
                if recipient_hash in seen:
                    continue
                seen.add(recipient_hash)

                job_fields = {"event_id": event.id, "recipient_email": email}
                if self._schedule(event.id, notification_type, recipient_hash, now, job_fields):
                    result.enqueued += 1

        logger.info(
            f"Scanned {notification_type.value} reminders: {result.candidates} events",
            extra=result.to_dict(),
        )
        return result

    def scan_waitlist_invites(self, now: datetime) -> ScanResult:
        """Count live events that could send waitlist invites.

        Invites are sent when capacity frees up, through
        NotificationTriggers.queue_waitlist_invites. This sweep enqueues
        nothing and reports itself as not implemented.
        """
        result = ScanResult(
            notification_type=NotificationType.WAITLIST_INVITE,
            status=ScanStatus.NOT_IMPLEMENTED,
        )
        resolver = EventStateResolver(self.session, now)
        waitlists = WaitlistManager(self.session)

        events = self.session.exec(
            select(Event).where(Event.published == True).order_by(Event.id)  # noqa: E712
        ).all()
        for event in events:
            if not waitlists.is_waitlist_auto_invite_enabled(event):
                continue
            if resolver.resolve_state(event) == EventState.LIVE:
                result.candidates += 1

        logger.warning(
            "Waitlist invite sweep is not implemented; invites are sent when capacity is released",
            extra={"candidate_events": result.candidates},
        )
        return result

    def scan_weekly_digests(self, now: datetime) -> ScanResult:
        """Schedule the weekly category digest, at most once per 7 days."""
        result = ScanResult(notification_type=NotificationType.WEEKLY_CATEGORY_DIGEST)

        if now.weekday() != self.settings.DIGEST_WEEKDAY:
            result.status = ScanStatus.SKIPPED
            return result

        now_ts = _to_timestamp(now)
        last_run = int(self.state_store.get(WEEKLY_DIGEST_WATERMARK, 0) or 0)
        if now_ts - last_run < ONE_WEEK.total_seconds():
            logger.debug(
                "Weekly digest already ran this week",
                extra={"last_run": last_run},
            )
            result.status = ScanStatus.SKIPPED
            return result

        users = self.session.exec(
            select(User).where(User.is_active == True).order_by(User.id)  # noqa: E712
        ).all()
        since = now - ONE_WEEK

        for user in users:
            if not user.followed_categories or not user.email:
                continue
            result.candidates += 1

            recipient_hash = hash_recipient(user.email)
            if self._schedule(
                None,
                NotificationType.WEEKLY_CATEGORY_DIGEST,
                recipient_hash,
                now,
                {"user_id": user.id},
                since=since,
            ):
                result.enqueued += 1

        self.state_store.set(WEEKLY_DIGEST_WATERMARK, now_ts)
        self.session.commit()

        logger.info(
            f"Scheduled weekly category digests for {result.enqueued} users",
            extra=result.to_dict(),
        )
        return result

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _schedule(
        self,
        event_id: int | None,
        notification_type: NotificationType,
        recipient_hash: str,
        now: datetime,
        job_fields: dict[str, Any],
        since: datetime | None = None,
    ) -> bool:
        """Create a ledger record and its job unless already sent.

        Returns:
            True if a job was enqueued
        """
        if self.ledger.is_already_sent(event_id, notification_type, recipient_hash, since=since):
            return False

        dispatch_id = self.ledger.create_dispatch(
            event_id,
            notification_type,
            recipient_hash,
            scheduled_for=now,
        )
        job = job_model_for(notification_type)(
            kind=notification_type.value,
            dispatch_id=dispatch_id,
            **job_fields,
        )
        self.queue.enqueue(job)
        self.session.commit()
        return True
