"""Dispatch ledger: idempotency guard and audit trail for automated notifications.

The ledger answers one question: has this notification already been
delivered to this recipient for this event? Records are keyed by
(event_id, notification_type, recipient_hash). event_id None means an
account-wide notification and only ever matches other account-wide
records.

Uniqueness is advisory. Callers must call is_already_sent() before
create_dispatch(), and nothing stops two concurrent callers from both
passing the check.
"""

import hashlib
import logging
from datetime import datetime
from typing import Any

from sqlmodel import Session, select

from eventlane.models.dispatch import AutomationDispatch, DispatchStatus, NotificationType

logger = logging.getLogger(__name__)


def hash_recipient(identifier: str) -> str:
    """Hash a recipient identifier (email or user id).

    Case-insensitive and whitespace-trimmed, with no salt, so the same
    recipient always produces the same hash.
    """
    return hashlib.sha256(identifier.strip().lower().encode("utf-8")).hexdigest()


class DispatchLedger:
    """Reads and writes AutomationDispatch records.

    Methods flush but never commit; storage errors propagate to the caller.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    hash_recipient = staticmethod(hash_recipient)

    def create_dispatch(
        self,
        event_id: int | None,
        notification_type: NotificationType,
        recipient_hash: str,
        scheduled_for: datetime | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """Insert a new SCHEDULED record.

        Args:
            event_id: The event ID (None for account-wide notifications)
            notification_type: Notification kind
            recipient_hash: Result of hash_recipient()
            scheduled_for: When the dispatch was meant to fire (defaults to now)
            metadata: Optional payload stored with the record

        Returns:
            int: The dispatch ID
        """
        record = AutomationDispatch(
            event_id=event_id,
            notification_type=notification_type,
            recipient_hash=recipient_hash,
            scheduled_for=scheduled_for or datetime.utcnow(),
            status=DispatchStatus.SCHEDULED,
            attempts=0,
            meta=metadata,
        )
        self.session.add(record)
        self.session.flush()
        return record.id

    def is_already_sent(
        self,
        event_id: int | None,
        notification_type: NotificationType,
        recipient_hash: str,
        since: datetime | None = None,
    ) -> bool:
        """Check whether a SENT record exists for the triple.

        Args:
            event_id: The event ID; None matches only account-wide records
            notification_type: Notification kind
            recipient_hash: Result of hash_recipient()
            since: Only consider records scheduled after this time

        Returns:
            bool: True if the notification was already delivered
        """
        query = (
            select(AutomationDispatch.id)
            .where(AutomationDispatch.notification_type == notification_type)
            .where(AutomationDispatch.recipient_hash == recipient_hash)
            .where(AutomationDispatch.status == DispatchStatus.SENT)
        )
        if event_id is not None:
            query = query.where(AutomationDispatch.event_id == event_id)
        else:
            query = query.where(AutomationDispatch.event_id == None)  # noqa: E711
        if since is not None:
            query = query.where(AutomationDispatch.scheduled_for > since)

        return self.session.exec(query.limit(1)).first() is not None

    def mark_sent(self, dispatch_id: int) -> bool:
        """Mark a dispatch as SENT and count the attempt."""
        record = self.session.get(AutomationDispatch, dispatch_id)
        if record is None:
            return False

        record.status = DispatchStatus.SENT
        record.sent_at = datetime.utcnow()
        record.attempts += 1
        self.session.add(record)
        self.session.flush()
        return True

    def mark_failed(self, dispatch_id: int, error: str) -> bool:
        """Mark a dispatch as FAILED, keep the error and count the attempt."""
        record = self.session.get(AutomationDispatch, dispatch_id)
        if record is None:
            return False

        record.status = DispatchStatus.FAILED
        record.last_error = error
        record.attempts += 1
        self.session.add(record)
        self.session.flush()
        return True

    def mark_skipped(self, dispatch_id: int, reason: str) -> bool:
        """Mark a dispatch as SKIPPED. Skips are not counted as attempts."""
        record = self.session.get(AutomationDispatch, dispatch_id)
        if record is None:
            return False

        record.status = DispatchStatus.SKIPPED
        record.last_error = reason
        self.session.add(record)
        self.session.flush()
        return True

    def get_dispatch(self, dispatch_id: int) -> AutomationDispatch | None:
        """Load one dispatch record."""
        return self.session.get(AutomationDispatch, dispatch_id)

    def get_dispatches(
        self,
        event_id: int | None,
        notification_type: NotificationType,
    ) -> list[AutomationDispatch]:
        """List records for an event (or account-wide) and kind, newest first."""
        query = select(AutomationDispatch).where(
            AutomationDispatch.notification_type == notification_type
        )
        if event_id is not None:
            query = query.where(AutomationDispatch.event_id == event_id)
        else:
            query = query.where(AutomationDispatch.event_id == None)  # noqa: E711

        query = query.order_by(AutomationDispatch.scheduled_for.desc(), AutomationDispatch.id.desc())
        return list(self.session.exec(query).all())
