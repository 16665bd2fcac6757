"""Automation error taxonomy.

Workers raise these while handling a job. AutomationWorker.handle() turns
each one into a terminal ledger transition plus a log line, so none of
them escape a worker.
"""


class AutomationError(Exception):
    """Base class for automation job errors."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class MissingDataError(AutomationError):
    """Required payload fields are absent or malformed. The job is dropped."""


class EntityNotFoundError(AutomationError):
    """A referenced event, attendee or user no longer exists."""


class AlreadyProcessedError(AutomationError):
    """The idempotency check found a previous successful send."""


class IneligibleStateError(AutomationError):
    """The domain entity no longer warrants the notification."""


class DeliveryFailureError(AutomationError):
    """The messaging collaborator raised while queuing the message."""
