"""Services for notification automation.

Services:
- dispatch.py: Dispatch ledger (idempotency guard) and recipient hashing
- audit.py: Append-only automation audit log
- event_state.py: Event state resolution
- scheduler.py: Cron-triggered scanner that enqueues due notifications
- triggers.py: On-demand triggers (exports, cancellations, waitlist invites)
- attendance.py: Attendee queries and FIFO waitlist management
- messaging.py: Messaging collaborator (logging or HTTP)
- rate_limiter.py: Trailing-window API rate limiting
- auth.py / invite_tokens.py: JWT operator and invite tokens
"""

from eventlane.services.audit import AutomationAuditLogger
from eventlane.services.dispatch import DispatchLedger, hash_recipient
from eventlane.services.event_state import EventState, EventStateResolver
from eventlane.services.messaging import HttpMessenger, LoggingMessenger, Messenger, get_messenger
from eventlane.services.scheduler import AutomationScheduler, ScanReport, ScanResult, ScanStatus
from eventlane.services.triggers import NotificationTriggers

__all__ = [
    # Ledger
    "DispatchLedger",
    "hash_recipient",
    "AutomationAuditLogger",
    # State
    "EventState",
    "EventStateResolver",
    # Scanner and triggers
    "AutomationScheduler",
    "ScanReport",
    "ScanResult",
    "ScanStatus",
    "NotificationTriggers",
    # Messaging
    "Messenger",
    "LoggingMessenger",
    "HttpMessenger",
    "get_messenger",
]
