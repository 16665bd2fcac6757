"""Tests for the automation workers.

Tests cover:
- Job contract: not found, already sent, ineligible, delivery failure
- Payload validation and redelivery of settled jobs
- One worker per notification kind
- Queue plumbing (release and give-up)
- WorkerRunner orchestration
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import Mock, patch

from sqlalchemy import func
from sqlmodel import Session, select

from eventlane.jobs.queue import DatabaseQueue
from eventlane.jobs.types import (
    JOB_MODELS,
    QUEUE_NAMES,
    EventCancelledJob,
    ReminderJob,
    SalesOpenJob,
    WaitlistInviteJob,
    WeeklyDigestJob,
    queue_for,
)
from eventlane.models.attendee import Attendee, AttendeeStatus
from eventlane.models.audit_log import AutomationAuditLog
from eventlane.models.dispatch import AutomationDispatch, DispatchStatus, NotificationType
from eventlane.models.event import Event
from eventlane.models.queue import QueueItem
from eventlane.models.user import User
from eventlane.services.dispatch import DispatchLedger, hash_recipient
from eventlane.services.invite_tokens import verify_invite_token
from eventlane.services.triggers import NotificationTriggers
from eventlane.workers.automation import DispatchOutcome
from eventlane.workers.base import WorkerResult, WorkerStatus
from eventlane.workers.event_cancelled_worker import DEFAULT_CANCEL_REASON, EventCancelledWorker
from eventlane.workers.export_ready_worker import ExportReadyWorker
from eventlane.workers.reminder_worker import ReminderWorker
from eventlane.workers.runner import RunnerResult, WorkerRunner, build_workers
from eventlane.workers.sales_open_worker import SalesOpenWorker
from eventlane.workers.waitlist_invite_worker import WaitlistInviteWorker
from eventlane.workers.weekly_digest_worker import WeeklyDigestWorker


def schedule_reminder(session: Session, event_id: int, email: str) -> tuple[int, dict]:
    """Create a SCHEDULED reminder dispatch and its payload."""
    dispatch_id = DispatchLedger(session).create_dispatch(
        event_id, NotificationType.REMINDER_24H, hash_recipient(email)
    )
    session.commit()
    job = ReminderJob(kind="reminder_24h", dispatch_id=dispatch_id, event_id=event_id, recipient_email=email)
    return dispatch_id, job.to_payload()


def sent_messages(messenger: Mock) -> list[dict]:
    """Messages handed to a mocked messenger, in call order."""
    return [
        {"template": template, "recipient": recipient, "context": context}
        for template, recipient, context in (c.args for c in messenger.queue.call_args_list)
    ]


def queue_length(session: Session, queue_name: str) -> int:
    return session.exec(
        select(func.count()).select_from(QueueItem).where(QueueItem.queue_name == queue_name)
    ).one()


# ============================================================================
# Job Contract Tests
# ============================================================================

class TestReminderWorker:
    """Tests for the shared handle() contract, through ReminderWorker."""

    def test_sends_reminder(self, db_session: Session, event: Event):
        """A due reminder is handed to the messenger and marked SENT."""
        messenger = Mock()
        worker = ReminderWorker(NotificationType.REMINDER_24H, messenger=messenger)
        dispatch_id, payload = schedule_reminder(db_session, event.id, "fan@example.com")

        outcome = worker.handle(db_session, payload)

        assert outcome == DispatchOutcome.SENT
        messenger.queue.assert_called_once()
        template, recipient, context = messenger.queue.call_args.args
        assert template == "event_reminder_24h"
        assert recipient == "fan@example.com"
        assert context["event_title"] == event.title
        assert context["reminder_type"] == "24h"
        assert context["venue"] == "Town Hall"
        assert context["event_url"].endswith(f"/events/{event.id}")

        record = db_session.get(AutomationDispatch, dispatch_id)
        assert record.status == DispatchStatus.SENT
        assert record.attempts == 1

        audit = db_session.exec(select(AutomationAuditLog)).one()
        assert audit.action == "notification_sent"
        assert audit.recipient_hash == hash_recipient("fan@example.com")

    def test_cancelled_event_is_skipped(self, db_session: Session, event: Event):
        """Reminders for a cancelled event are skipped without messaging."""
        event.state_override = "cancelled"
        db_session.add(event)
        db_session.commit()

        messenger = Mock()
        worker = ReminderWorker(NotificationType.REMINDER_24H, messenger=messenger)
        dispatch_id, payload = schedule_reminder(db_session, event.id, "fan@example.com")

        outcome = worker.handle(db_session, payload)

        assert outcome == DispatchOutcome.SKIPPED
        messenger.queue.assert_not_called()
        record = db_session.get(AutomationDispatch, dispatch_id)
        assert record.status == DispatchStatus.SKIPPED
        assert record.last_error == "Event is cancelled"

    def test_missing_event_fails(self, db_session: Session):
        """A job for an event that no longer exists is marked FAILED."""
        messenger = Mock()
        worker = ReminderWorker(NotificationType.REMINDER_24H, messenger=messenger)
        dispatch_id, payload = schedule_reminder(db_session, 999999, "fan@example.com")

        outcome = worker.handle(db_session, payload)

        assert outcome == DispatchOutcome.FAILED
        messenger.queue.assert_not_called()
        record = db_session.get(AutomationDispatch, dispatch_id)
        assert record.status == DispatchStatus.FAILED
        assert record.last_error == "Event not found"

    def test_already_sent_is_skipped(self, db_session: Session, event: Event):
        """A duplicate job for a delivered reminder is skipped."""
        messenger = Mock()
        worker = ReminderWorker(NotificationType.REMINDER_24H, messenger=messenger)
        first_id, first_payload = schedule_reminder(db_session, event.id, "fan@example.com")
        second_id, second_payload = schedule_reminder(db_session, event.id, "FAN@example.com")

        assert worker.handle(db_session, first_payload) == DispatchOutcome.SENT
        assert worker.handle(db_session, second_payload) == DispatchOutcome.SKIPPED

        assert messenger.queue.call_count == 1
        record = db_session.get(AutomationDispatch, second_id)
        assert record.status == DispatchStatus.SKIPPED
        assert record.last_error == "Already sent"

    def test_messenger_error_fails(self, db_session: Session, event: Event):
        """A messenger exception becomes a FAILED dispatch with its message."""
        messenger = Mock()
        messenger.queue.side_effect = RuntimeError("SMTP down")
        worker = ReminderWorker(NotificationType.REMINDER_24H, messenger=messenger)
        dispatch_id, payload = schedule_reminder(db_session, event.id, "fan@example.com")

        outcome = worker.handle(db_session, payload)

        assert outcome == DispatchOutcome.FAILED
        record = db_session.get(AutomationDispatch, dispatch_id)
        assert record.status == DispatchStatus.FAILED
        assert record.last_error == "SMTP down"
        assert record.attempts == 1
        assert db_session.exec(select(AutomationAuditLog)).first() is None

    def test_invalid_payload_is_dropped(self, db_session: Session):
        """Payloads missing required fields leave the ledger untouched."""
        messenger = Mock()
        worker = ReminderWorker(NotificationType.REMINDER_24H, messenger=messenger)

        outcome = worker.handle(db_session, {"dispatch_id": 1})

        assert outcome == DispatchOutcome.DROPPED
        messenger.queue.assert_not_called()
        assert db_session.exec(select(AutomationDispatch)).first() is None

    def test_wrong_kind_is_dropped(self, db_session: Session, event: Event):
        """A 2h reminder worker refuses 24h jobs."""
        worker = ReminderWorker(NotificationType.REMINDER_2H, messenger=Mock())
        dispatch_id, payload = schedule_reminder(db_session, event.id, "fan@example.com")

        assert worker.handle(db_session, payload) == DispatchOutcome.DROPPED
        assert db_session.get(AutomationDispatch, dispatch_id).status == DispatchStatus.SCHEDULED

    def test_settled_dispatch_is_not_touched(self, db_session: Session, event: Event):
        """Redelivery of a job whose dispatch is already SENT changes nothing."""
        messenger = Mock()
        worker = ReminderWorker(NotificationType.REMINDER_24H, messenger=messenger)
        dispatch_id, payload = schedule_reminder(db_session, event.id, "fan@example.com")

        assert worker.handle(db_session, payload) == DispatchOutcome.SENT
        assert worker.handle(db_session, payload) == DispatchOutcome.DROPPED

        assert messenger.queue.call_count == 1
        assert db_session.get(AutomationDispatch, dispatch_id).status == DispatchStatus.SENT

    def test_failed_dispatch_redelivery_is_dropped(self, db_session: Session, event: Event):
        """A redelivered job for a FAILED dispatch keeps the recorded error."""
        messenger = Mock()
        messenger.queue.side_effect = RuntimeError("SMTP down")
        worker = ReminderWorker(NotificationType.REMINDER_24H, messenger=messenger)
        dispatch_id, payload = schedule_reminder(db_session, event.id, "fan@example.com")

        assert worker.handle(db_session, payload) == DispatchOutcome.FAILED
        assert worker.handle(db_session, payload) == DispatchOutcome.DROPPED

        record = db_session.get(AutomationDispatch, dispatch_id)
        assert record.status == DispatchStatus.FAILED
        assert record.last_error == "SMTP down"
        assert messenger.queue.call_count == 1

    def test_worker_names(self):
        assert ReminderWorker(NotificationType.REMINDER_24H, messenger=Mock()).worker_name == "ReminderWorker[24h]"
        assert ReminderWorker(NotificationType.REMINDER_2H, messenger=Mock()).worker_name == "ReminderWorker[2h]"

    def test_rejects_non_reminder_kind(self):
        with pytest.raises(ValueError):
            ReminderWorker(NotificationType.SALES_OPEN, messenger=Mock())


# ============================================================================
# Per-Kind Worker Tests
# ============================================================================

class TestSalesOpenWorker:
    """Tests for SalesOpenWorker."""

    def test_sends_to_owner(self, db_session: Session, event: Event, owner: User):
        messenger = Mock()
        dispatch_id = DispatchLedger(db_session).create_dispatch(
            event.id, NotificationType.SALES_OPEN, hash_recipient(str(owner.id))
        )
        db_session.commit()

        outcome = SalesOpenWorker(messenger=messenger).handle(
            db_session, SalesOpenJob(dispatch_id=dispatch_id, event_id=event.id).to_payload()
        )

        assert outcome == DispatchOutcome.SENT
        template, recipient, context = messenger.queue.call_args.args
        assert template == "sales_open"
        assert recipient == owner.email
        assert "sales_start" in context

    def test_owner_without_email_fails(self, db_session: Session, event: Event, owner: User):
        owner.email = ""
        db_session.add(owner)
        dispatch_id = DispatchLedger(db_session).create_dispatch(
            event.id, NotificationType.SALES_OPEN, hash_recipient(str(owner.id))
        )
        db_session.commit()

        outcome = SalesOpenWorker(messenger=Mock()).handle(
            db_session, SalesOpenJob(dispatch_id=dispatch_id, event_id=event.id).to_payload()
        )

        assert outcome == DispatchOutcome.FAILED
        assert db_session.get(AutomationDispatch, dispatch_id).last_error == "Vendor email not found"


class TestEventCancelledWorker:
    """Tests for EventCancelledWorker."""

    def test_sends_despite_cancelled_state(self, db_session: Session, event: Event):
        """Cancellation notices are not gated on the event state."""
        event.state_override = "cancelled"
        db_session.add(event)
        dispatch_id = DispatchLedger(db_session).create_dispatch(
            event.id, NotificationType.EVENT_CANCELLED, hash_recipient("fan@example.com")
        )
        db_session.commit()
        messenger = Mock()

        payload = EventCancelledJob(
            dispatch_id=dispatch_id, event_id=event.id, recipient_email="fan@example.com"
        ).to_payload()
        outcome = EventCancelledWorker(messenger=messenger).handle(db_session, payload)

        assert outcome == DispatchOutcome.SENT
        template, _, context = messenger.queue.call_args.args
        assert template == "event_cancelled"
        assert context["cancel_reason"] == DEFAULT_CANCEL_REASON
        assert "refund_info" in context


class TestExportReadyWorker:
    """Tests for ExportReadyWorker."""

    def test_processes_queued_export(self, db_session: Session, event: Event, owner: User):
        """Trigger -> queue -> worker delivers the download link."""
        messenger = Mock()
        assert NotificationTriggers(db_session).queue_export_notification(
            event, "csv", "https://files.example.com/export.csv"
        ) is True

        result = ExportReadyWorker(messenger=messenger).run(db_session)

        assert result.status == WorkerStatus.SUCCESS
        assert result.processed_count == 1
        assert result.metadata["outcomes"] == {"sent": 1}
        assert len(sent_messages(messenger)) == 1
        message = sent_messages(messenger)[0]
        assert message["template"] == "export_ready_csv"
        assert message["recipient"] == owner.email
        assert message["context"]["download_url"] == "https://files.example.com/export.csv"
        assert message["context"]["export_type"] == "CSV"

        assert queue_length(db_session, queue_for(NotificationType.EXPORT_READY_CSV)) == 0
        assert DispatchLedger(db_session).is_already_sent(
            event.id, NotificationType.EXPORT_READY_CSV, hash_recipient(owner.email)
        )

    def test_handles_both_export_kinds(self):
        worker = ExportReadyWorker(messenger=Mock())
        assert set(worker.notification_types) == {
            NotificationType.EXPORT_READY_CSV,
            NotificationType.EXPORT_READY_ICS,
        }


class TestWaitlistInviteWorker:
    """Tests for WaitlistInviteWorker."""

    def test_sends_claim_link(self, db_session: Session, event: Event):
        attendee = Attendee(event_id=event.id, email="wait@example.com", status=AttendeeStatus.WAITLIST)
        db_session.add(attendee)
        db_session.commit()
        dispatch_id = DispatchLedger(db_session).create_dispatch(
            event.id, NotificationType.WAITLIST_INVITE, hash_recipient("wait@example.com")
        )
        db_session.commit()
        messenger = Mock()

        payload = WaitlistInviteJob(
            dispatch_id=dispatch_id, event_id=event.id, attendee_id=attendee.id
        ).to_payload()
        outcome = WaitlistInviteWorker(messenger=messenger).handle(db_session, payload, now=datetime.utcnow())

        assert outcome == DispatchOutcome.SENT
        template, recipient, context = messenger.queue.call_args.args
        assert template == "waitlist_invite"
        assert recipient == "wait@example.com"
        token = context["invite_url"].rsplit("/", 1)[-1]
        assert verify_invite_token(token, event.id) == attendee.id

        audit = db_session.exec(select(AutomationAuditLog)).one()
        assert audit.meta["attendee_id"] == attendee.id

    def test_attendee_of_other_event_fails(self, db_session: Session, event: Event, owner: User):
        other = Event(owner_id=owner.id, title="Other", created_at=datetime.utcnow() - timedelta(days=30))
        db_session.add(other)
        db_session.commit()
        attendee = Attendee(event_id=other.id, email="wait@example.com", status=AttendeeStatus.WAITLIST)
        db_session.add(attendee)
        dispatch_id = DispatchLedger(db_session).create_dispatch(
            event.id, NotificationType.WAITLIST_INVITE, hash_recipient("wait@example.com")
        )
        db_session.commit()

        payload = WaitlistInviteJob(
            dispatch_id=dispatch_id, event_id=event.id, attendee_id=attendee.id
        ).to_payload()
        outcome = WaitlistInviteWorker(messenger=Mock()).handle(db_session, payload)

        assert outcome == DispatchOutcome.FAILED
        assert db_session.get(AutomationDispatch, dispatch_id).last_error == "Attendee not found"


class TestWeeklyDigestWorker:
    """Tests for WeeklyDigestWorker."""

    def test_sends_upcoming_events(self, db_session: Session, event: Event):
        now = datetime.utcnow()
        user = make_follower(db_session)
        dispatch_id = DispatchLedger(db_session).create_dispatch(
            None, NotificationType.WEEKLY_CATEGORY_DIGEST, hash_recipient(user.email)
        )
        db_session.commit()
        messenger = Mock()

        outcome = WeeklyDigestWorker(messenger=messenger).handle(
            db_session, WeeklyDigestJob(dispatch_id=dispatch_id, user_id=user.id).to_payload(), now=now
        )

        assert outcome == DispatchOutcome.SENT
        template, recipient, context = messenger.queue.call_args.args
        assert template == "weekly_category_digest"
        assert recipient == user.email
        assert context["event_count"] == 1
        assert context["events"][0]["title"] == event.title

        audit = db_session.exec(select(AutomationAuditLog)).one()
        assert audit.event_id is None

    def test_no_upcoming_events_is_skipped(self, db_session: Session):
        user = make_follower(db_session, categories=["theatre"])
        dispatch_id = DispatchLedger(db_session).create_dispatch(
            None, NotificationType.WEEKLY_CATEGORY_DIGEST, hash_recipient(user.email)
        )
        db_session.commit()
        messenger = Mock()

        outcome = WeeklyDigestWorker(messenger=messenger).handle(
            db_session, WeeklyDigestJob(dispatch_id=dispatch_id, user_id=user.id).to_payload()
        )

        assert outcome == DispatchOutcome.SKIPPED
        messenger.queue.assert_not_called()
        assert db_session.get(AutomationDispatch, dispatch_id).last_error == (
            "No upcoming events in followed categories"
        )

    def test_inactive_user_fails(self, db_session: Session):
        user = make_follower(db_session)
        user.is_active = False
        db_session.add(user)
        dispatch_id = DispatchLedger(db_session).create_dispatch(
            None, NotificationType.WEEKLY_CATEGORY_DIGEST, hash_recipient(user.email)
        )
        db_session.commit()

        outcome = WeeklyDigestWorker(messenger=Mock()).handle(
            db_session, WeeklyDigestJob(dispatch_id=dispatch_id, user_id=user.id).to_payload()
        )

        assert outcome == DispatchOutcome.FAILED
        assert db_session.get(AutomationDispatch, dispatch_id).last_error == "User not found or inactive"


# ============================================================================
# Registry Tests
# ============================================================================

class TestRegistry:
    """Every notification kind has a payload model, a queue and a worker."""

    def test_job_models_cover_every_kind(self):
        assert set(JOB_MODELS) == set(NotificationType)

    def test_queues_cover_every_kind(self):
        assert set(QUEUE_NAMES) == set(NotificationType)

    def test_workers_cover_every_kind(self):
        workers = build_workers(batch_size=10, max_retries=3, messenger=Mock())
        handled = [kind for worker in workers for kind in worker.notification_types]

        assert sorted(handled) == sorted(NotificationType)
        for worker in workers:
            assert {queue_for(kind) for kind in worker.notification_types} == {worker.queue_name}


# ============================================================================
# Queue Plumbing Tests
# ============================================================================

class TestQueuePlumbing:
    """Tests for AutomationWorker.run against the database queue."""

    def test_unexpected_error_releases_item(self, db_session: Session, event: Event):
        """An item whose processing raises is released for redelivery."""
        _, payload = schedule_reminder(db_session, event.id, "fan@example.com")
        item = DatabaseQueue(db_session).create_item(queue_for(NotificationType.REMINDER_24H), payload)
        db_session.commit()

        worker = ReminderWorker(NotificationType.REMINDER_24H, max_retries=3, messenger=Mock())
        with patch.object(worker, "handle", side_effect=RuntimeError("database went away")):
            result = worker.run(db_session)

        assert result.status == WorkerStatus.FAILED
        assert result.failed_count == 1
        assert result.errors[0]["can_retry"] is True

        db_session.refresh(item)
        assert item.claimed_at is None
        assert item.attempts == 1

    def test_gives_up_after_max_retries(self, db_session: Session, event: Event):
        """The item is deleted once it has used up its deliveries."""
        _, payload = schedule_reminder(db_session, event.id, "fan@example.com")
        DatabaseQueue(db_session).create_item(queue_for(NotificationType.REMINDER_24H), payload)
        db_session.commit()

        worker = ReminderWorker(NotificationType.REMINDER_24H, max_retries=1, messenger=Mock())
        with patch.object(worker, "handle", side_effect=RuntimeError("database went away")):
            result = worker.run(db_session)

        assert result.errors[0]["can_retry"] is False
        assert result.metadata["outcomes"] == {"dropped": 1}
        assert queue_length(db_session, queue_for(NotificationType.REMINDER_24H)) == 0

    def test_claimed_item_is_not_redelivered(self, db_session: Session, event: Event):
        """Items with a live lease are not fetched."""
        _, payload = schedule_reminder(db_session, event.id, "fan@example.com")
        queue = DatabaseQueue(db_session)
        item = queue.create_item(queue_for(NotificationType.REMINDER_24H), payload)
        queue.claim(item)
        db_session.commit()

        result = ReminderWorker(NotificationType.REMINDER_24H, messenger=Mock()).run(db_session)

        assert result.status == WorkerStatus.NO_WORK

    def test_expired_lease_is_redelivered(self, db_session: Session, event: Event):
        _, payload = schedule_reminder(db_session, event.id, "fan@example.com")
        queue = DatabaseQueue(db_session, lease_seconds=60)
        item = queue.create_item(queue_for(NotificationType.REMINDER_24H), payload)
        queue.claim(item, now=datetime.utcnow() - timedelta(minutes=5))
        db_session.commit()

        assert [i.id for i in queue.fetch_claimable(item.queue_name, 10)] == [item.id]

    def test_no_work(self, db_session: Session):
        result = SalesOpenWorker(messenger=Mock()).run(db_session)

        assert result.status == WorkerStatus.NO_WORK
        assert result.metadata["queue"] == "automation_sales_open"


# ============================================================================
# WorkerRunner Tests
# ============================================================================

class TestWorkerRunner:
    """Tests for WorkerRunner."""

    def test_runner_initializes_workers(self):
        """One worker per queue."""
        runner = WorkerRunner(messenger=Mock())

        names = [worker.worker_name for worker in runner.workers]
        assert names == [
            "SalesOpenWorker",
            "ReminderWorker[24h]",
            "ReminderWorker[2h]",
            "WaitlistInviteWorker",
            "EventCancelledWorker",
            "ExportReadyWorker",
            "WeeklyDigestWorker",
        ]

    def test_run_once_processes_cancellations(self, db_session: Session, event: Event):
        """Cancel trigger -> runner -> one notice per attendee."""
        for email in ("a@example.com", "b@example.com"):
            db_session.add(Attendee(event_id=event.id, email=email))
        db_session.commit()
        queued = NotificationTriggers(db_session).notify_event_cancelled(event, "Storm warning")
        assert queued == 2

        messenger = Mock()
        result = WorkerRunner(scan=False, messenger=messenger).run_once(session=db_session)

        assert isinstance(result, RunnerResult)
        assert result.scan is None
        assert result.workers_run == 7
        assert result.total_processed == 2
        assert result.errors == []
        assert sorted(m["recipient"] for m in sent_messages(messenger)) == ["a@example.com", "b@example.com"]
        assert all(m["context"]["cancel_reason"] == "Storm warning" for m in sent_messages(messenger))

        statuses = {d.status for d in db_session.exec(select(AutomationDispatch)).all()}
        assert statuses == {DispatchStatus.SENT}

    def test_run_once_with_scan(self, db_session: Session, event: Event):
        """The scan runs first and its jobs are processed in the same cycle."""
        db_session.add(Attendee(event_id=event.id, email="fan@example.com"))
        db_session.commit()

        messenger = Mock()
        result = WorkerRunner(messenger=messenger).run_once(session=db_session)

        assert result.scan is not None
        assert result.scan.result_for(NotificationType.REMINDER_24H).enqueued == 1
        assert [m["template"] for m in sent_messages(messenger)] == ["event_reminder_24h"]

    def test_worker_error_is_collected(self, db_session: Session):
        runner = WorkerRunner(scan=False, messenger=Mock())
        runner._workers[0].run = Mock(side_effect=RuntimeError("boom"))
        for worker in runner._workers[1:]:
            worker.run = Mock(return_value=WorkerResult(status=WorkerStatus.NO_WORK))

        result = runner.run_once(session=db_session)

        assert result.workers_run == 6
        assert result.errors == ["SalesOpenWorker failed: boom"]

    def test_request_shutdown_sets_flag(self):
        runner = WorkerRunner(messenger=Mock())
        assert runner._shutdown_requested is False

        runner.request_shutdown()
        assert runner._shutdown_requested is True


# ============================================================================
# Pytest Fixtures
# ============================================================================

def make_follower(session: Session, categories: list[str] | None = None) -> User:
    user = User(email="follower@example.com", name="Follower", followed_categories=categories or ["music"])
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def db_session():
    """Create a test database session."""
    from sqlmodel import create_engine, SQLModel
    from sqlmodel.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Import all models to register them
    import eventlane.models  # noqa: F401

    SQLModel.metadata.create_all(engine)

    with Session(engine) as session:
        yield session


@pytest.fixture
def owner(db_session: Session):
    """Create an event owner."""
    user = User(email="vendor@example.com", name="Vendor")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def event(db_session: Session, owner: User):
    """Create a live music event starting in 24 hours."""
    now = datetime.utcnow()
    event = Event(
        owner_id=owner.id,
        title="Harbour Lights Festival",
        category="music",
        venue_name="Town Hall",
        created_at=now - timedelta(days=30),
        event_start=now + timedelta(hours=24),
        event_end=now + timedelta(hours=28),
    )
    db_session.add(event)
    db_session.commit()
    db_session.refresh(event)
    return event
