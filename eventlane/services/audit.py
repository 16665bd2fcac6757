"""Append-only audit logging for automation actions."""

from typing import Any

from sqlmodel import Session, select

from eventlane.models.audit_log import AutomationAuditLog
from eventlane.models.dispatch import NotificationType


class AutomationAuditLogger:
    """Writes AutomationAuditLog rows. Never updates or deletes them."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def log(
        self,
        event_id: int | None,
        action: str,
        notification_type: NotificationType | None = None,
        recipient_hash: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> int:
        """Append an audit entry.

        Args:
            event_id: The event ID (None for account-wide actions)
            action: Action name, e.g. "notification_sent"
            notification_type: Notification kind if applicable
            recipient_hash: Hashed recipient if applicable
            metadata: Optional extra details

        Returns:
            int: The audit entry ID
        """
        entry = AutomationAuditLog(
            event_id=event_id,
            action=action,
            notification_type=notification_type,
            recipient_hash=recipient_hash,
            meta=metadata,
        )
        self.session.add(entry)
        self.session.flush()
        return entry.id

    def get_entries(self, event_id: int | None = None, limit: int = 100) -> list[AutomationAuditLog]:
        """Most recent entries first, optionally for one event."""
        query = select(AutomationAuditLog)
        if event_id is not None:
            query = query.where(AutomationAuditLog.event_id == event_id)
        query = query.order_by(AutomationAuditLog.created_at.desc(), AutomationAuditLog.id.desc())
        return list(self.session.exec(query.limit(limit)).all())
