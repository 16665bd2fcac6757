"""SQLModel entities for the automation service."""

from eventlane.models.attendee import Attendee, AttendeeStatus
from eventlane.models.audit_log import AutomationAuditLog
from eventlane.models.dispatch import AutomationDispatch, DispatchStatus, NotificationType
from eventlane.models.event import Event
from eventlane.models.queue import QueueItem
from eventlane.models.state import RateLimitEntry, StateValue
from eventlane.models.user import User

__all__ = [
    "User",
    "Event",
    "Attendee",
    "AttendeeStatus",
    "AutomationDispatch",
    "AutomationAuditLog",
    "DispatchStatus",
    "NotificationType",
    "QueueItem",
    "StateValue",
    "RateLimitEntry",
]
