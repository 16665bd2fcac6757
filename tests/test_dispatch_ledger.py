"""Tests for the dispatch ledger and audit logger.

Tests cover:
- Recipient hashing
- Idempotency lookups (per-event and account-wide)
- Terminal transitions and attempt counting
- Audit entries
"""

import pytest
from datetime import datetime, timedelta

from sqlmodel import Session, select

from eventlane.models.audit_log import AutomationAuditLog
from eventlane.models.dispatch import AutomationDispatch, DispatchStatus, NotificationType
from eventlane.services.audit import AutomationAuditLogger
from eventlane.services.dispatch import DispatchLedger, hash_recipient


# ============================================================================
# hash_recipient Tests
# ============================================================================

class TestHashRecipient:
    """Tests for recipient hashing."""

    def test_case_and_whitespace_insensitive(self):
        """Hashing ignores case and surrounding whitespace."""
        assert hash_recipient("User@Example.com ") == hash_recipient("user@example.com")

    def test_stable_across_calls(self):
        """The same identifier always hashes the same way."""
        assert hash_recipient("a@b.com") == hash_recipient("a@b.com")

    def test_is_sha256_hex(self):
        """Hash is a 64 character hex digest."""
        digest = hash_recipient("a@b.com")
        assert len(digest) == 64
        int(digest, 16)

    def test_different_recipients_differ(self):
        assert hash_recipient("a@b.com") != hash_recipient("c@d.com")

    def test_ledger_exposes_hash(self, db_session: Session):
        """DispatchLedger.hash_recipient is the module function."""
        assert DispatchLedger(db_session).hash_recipient("X@Y.com") == hash_recipient("x@y.com")


# ============================================================================
# DispatchLedger Tests
# ============================================================================

class TestDispatchLedger:
    """Tests for DispatchLedger."""

    def test_create_dispatch_is_scheduled(self, db_session: Session):
        """New records start SCHEDULED with no attempts."""
        ledger = DispatchLedger(db_session)
        dispatch_id = ledger.create_dispatch(
            5,
            NotificationType.REMINDER_24H,
            hash_recipient("a@b.com"),
            metadata={"source": "test"},
        )

        record = ledger.get_dispatch(dispatch_id)
        assert record is not None
        assert record.status == DispatchStatus.SCHEDULED
        assert record.attempts == 0
        assert record.meta == {"source": "test"}
        assert record.sent_at is None

    def test_not_sent_until_marked(self, db_session: Session):
        """A SCHEDULED record does not count as sent."""
        ledger = DispatchLedger(db_session)
        recipient = hash_recipient("a@b.com")
        ledger.create_dispatch(5, NotificationType.REMINDER_24H, recipient)

        assert ledger.is_already_sent(5, NotificationType.REMINDER_24H, recipient) is False

    def test_sent_after_mark_sent(self, db_session: Session):
        """is_already_sent is true once a record for the triple is SENT."""
        ledger = DispatchLedger(db_session)
        recipient = hash_recipient("a@b.com")
        dispatch_id = ledger.create_dispatch(5, NotificationType.REMINDER_24H, recipient)

        assert ledger.mark_sent(dispatch_id) is True
        assert ledger.is_already_sent(5, NotificationType.REMINDER_24H, recipient) is True

        record = ledger.get_dispatch(dispatch_id)
        assert record.attempts == 1
        assert record.sent_at is not None

    def test_sent_is_scoped_to_type_and_event(self, db_session: Session):
        """A send for one kind or event does not block another."""
        ledger = DispatchLedger(db_session)
        recipient = hash_recipient("a@b.com")
        ledger.mark_sent(ledger.create_dispatch(5, NotificationType.REMINDER_24H, recipient))

        assert ledger.is_already_sent(5, NotificationType.REMINDER_2H, recipient) is False
        assert ledger.is_already_sent(6, NotificationType.REMINDER_24H, recipient) is False
        assert ledger.is_already_sent(5, NotificationType.REMINDER_24H, hash_recipient("c@d.com")) is False

    def test_global_not_satisfied_by_event_record(self, db_session: Session):
        """Account-wide lookups never match event-scoped records."""
        ledger = DispatchLedger(db_session)
        recipient = hash_recipient("a@b.com")
        ledger.mark_sent(
            ledger.create_dispatch(5, NotificationType.WEEKLY_CATEGORY_DIGEST, recipient)
        )

        assert ledger.is_already_sent(None, NotificationType.WEEKLY_CATEGORY_DIGEST, recipient) is False

    def test_event_not_satisfied_by_global_record(self, db_session: Session):
        """Event-scoped lookups never match account-wide records."""
        ledger = DispatchLedger(db_session)
        recipient = hash_recipient("a@b.com")
        ledger.mark_sent(
            ledger.create_dispatch(None, NotificationType.WEEKLY_CATEGORY_DIGEST, recipient)
        )

        assert ledger.is_already_sent(None, NotificationType.WEEKLY_CATEGORY_DIGEST, recipient) is True
        assert ledger.is_already_sent(5, NotificationType.WEEKLY_CATEGORY_DIGEST, recipient) is False

    def test_since_ignores_older_records(self, db_session: Session):
        """Records scheduled before `since` are not considered."""
        ledger = DispatchLedger(db_session)
        recipient = hash_recipient("a@b.com")
        now = datetime(2026, 10, 19, 9, 0)
        dispatch_id = ledger.create_dispatch(
            None,
            NotificationType.WEEKLY_CATEGORY_DIGEST,
            recipient,
            scheduled_for=now - timedelta(days=7),
        )
        ledger.mark_sent(dispatch_id)

        assert ledger.is_already_sent(
            None, NotificationType.WEEKLY_CATEGORY_DIGEST, recipient, since=now - timedelta(days=7)
        ) is False
        assert ledger.is_already_sent(
            None, NotificationType.WEEKLY_CATEGORY_DIGEST, recipient, since=now - timedelta(days=8)
        ) is True

    def test_mark_failed_records_error(self, db_session: Session):
        """mark_failed keeps the error and counts the attempt."""
        ledger = DispatchLedger(db_session)
        dispatch_id = ledger.create_dispatch(5, NotificationType.SALES_OPEN, hash_recipient("1"))

        assert ledger.mark_failed(dispatch_id, "SMTP down") is True

        record = ledger.get_dispatch(dispatch_id)
        assert record.status == DispatchStatus.FAILED
        assert record.last_error == "SMTP down"
        assert record.attempts == 1

    def test_mark_skipped_does_not_count_attempt(self, db_session: Session):
        """mark_skipped stores the reason without counting an attempt."""
        ledger = DispatchLedger(db_session)
        dispatch_id = ledger.create_dispatch(5, NotificationType.SALES_OPEN, hash_recipient("1"))

        assert ledger.mark_skipped(dispatch_id, "Event is cancelled") is True

        record = ledger.get_dispatch(dispatch_id)
        assert record.status == DispatchStatus.SKIPPED
        assert record.last_error == "Event is cancelled"
        assert record.attempts == 0

    def test_mark_unknown_dispatch(self, db_session: Session):
        """Transitions on a missing record report False."""
        ledger = DispatchLedger(db_session)

        assert ledger.mark_sent(999999) is False
        assert ledger.mark_failed(999999, "x") is False
        assert ledger.mark_skipped(999999, "x") is False

    def test_terminal_state_can_be_overwritten(self, db_session: Session):
        """Known gap: terminal records accept further transitions.

        Regression test for current behavior, not a guaranteed contract.
        """
        ledger = DispatchLedger(db_session)
        dispatch_id = ledger.create_dispatch(5, NotificationType.SALES_OPEN, hash_recipient("1"))

        ledger.mark_sent(dispatch_id)
        ledger.mark_sent(dispatch_id)
        record = ledger.get_dispatch(dispatch_id)
        assert record.status == DispatchStatus.SENT
        assert record.attempts == 2

        ledger.mark_failed(dispatch_id, "late failure")
        record = ledger.get_dispatch(dispatch_id)
        assert record.status == DispatchStatus.FAILED
        assert record.attempts == 3

    def test_no_uniqueness_on_create(self, db_session: Session):
        """Two records for the same triple can coexist."""
        ledger = DispatchLedger(db_session)
        recipient = hash_recipient("a@b.com")
        first = ledger.create_dispatch(5, NotificationType.REMINDER_2H, recipient)
        second = ledger.create_dispatch(5, NotificationType.REMINDER_2H, recipient)

        assert first != second
        assert len(ledger.get_dispatches(5, NotificationType.REMINDER_2H)) == 2

    def test_get_dispatches_newest_first(self, db_session: Session):
        """get_dispatches orders by scheduled_for descending."""
        ledger = DispatchLedger(db_session)
        now = datetime(2026, 10, 19, 9, 0)
        older = ledger.create_dispatch(
            5, NotificationType.SALES_OPEN, hash_recipient("1"), scheduled_for=now - timedelta(hours=1)
        )
        newer = ledger.create_dispatch(5, NotificationType.SALES_OPEN, hash_recipient("1"), scheduled_for=now)
        ledger.create_dispatch(None, NotificationType.SALES_OPEN, hash_recipient("1"), scheduled_for=now)

        dispatches = ledger.get_dispatches(5, NotificationType.SALES_OPEN)

        assert [d.id for d in dispatches] == [newer, older]

    def test_recipient_hash_not_email(self, db_session: Session):
        """Only the hash is persisted."""
        ledger = DispatchLedger(db_session)
        ledger.create_dispatch(5, NotificationType.REMINDER_24H, hash_recipient("secret@example.com"))
        db_session.commit()

        record = db_session.exec(select(AutomationDispatch)).one()
        assert "secret@example.com" not in record.recipient_hash


# ============================================================================
# AutomationAuditLogger Tests
# ============================================================================

class TestAuditLogger:
    """Tests for AutomationAuditLogger."""

    def test_log_appends_entry(self, db_session: Session):
        """log() writes one row and returns its id."""
        audit = AutomationAuditLogger(db_session)
        entry_id = audit.log(
            5,
            "notification_sent",
            NotificationType.SALES_OPEN,
            hash_recipient("1"),
            {"template": "sales_open"},
        )
        db_session.commit()

        entry = db_session.get(AutomationAuditLog, entry_id)
        assert entry.event_id == 5
        assert entry.action == "notification_sent"
        assert entry.notification_type == NotificationType.SALES_OPEN
        assert entry.meta == {"template": "sales_open"}
        assert entry.created_at is not None

    def test_log_account_wide(self, db_session: Session):
        """Account-wide entries have no event."""
        entry_id = AutomationAuditLogger(db_session).log(None, "digest_run")

        entry = db_session.get(AutomationAuditLog, entry_id)
        assert entry.event_id is None
        assert entry.notification_type is None
        assert entry.recipient_hash is None

    def test_get_entries_filters_and_orders(self, db_session: Session):
        """get_entries() returns newest first and honours event filter and limit."""
        audit = AutomationAuditLogger(db_session)
        first = audit.log(5, "notification_sent")
        second = audit.log(6, "notification_sent")
        third = audit.log(5, "notification_failed")
        db_session.commit()

        assert [e.id for e in audit.get_entries(5)] == [third, first]
        assert [e.id for e in audit.get_entries()] == [third, second, first]
        assert len(audit.get_entries(limit=1)) == 1


# ============================================================================
# Pytest Fixtures
# ============================================================================

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
