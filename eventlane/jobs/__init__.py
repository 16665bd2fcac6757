"""Automation job queues.

Components:
- types.py: Job payload models (one per notification kind) and registries
- queue.py: Database-backed queue the scanner produces into and workers consume
- errors.py: Error taxonomy workers convert into ledger transitions
"""

from eventlane.jobs.errors import (
    AlreadyProcessedError,
    AutomationError,
    DeliveryFailureError,
    EntityNotFoundError,
    IneligibleStateError,
    MissingDataError,
)
from eventlane.jobs.queue import DatabaseQueue
from eventlane.jobs.types import (
    JOB_MODELS,
    QUEUE_NAMES,
    AutomationJob,
    EventCancelledJob,
    ExportReadyJob,
    ReminderJob,
    SalesOpenJob,
    WaitlistInviteJob,
    WeeklyDigestJob,
    export_kind,
    job_model_for,
    parse_job,
    queue_for,
)

__all__ = [
    # Types
    "AutomationJob",
    "SalesOpenJob",
    "ReminderJob",
    "WaitlistInviteJob",
    "EventCancelledJob",
    "ExportReadyJob",
    "WeeklyDigestJob",
    "JOB_MODELS",
    "QUEUE_NAMES",
    "job_model_for",
    "queue_for",
    "export_kind",
    "parse_job",
    # Queue
    "DatabaseQueue",
    # Errors
    "AutomationError",
    "MissingDataError",
    "EntityNotFoundError",
    "AlreadyProcessedError",
    "IneligibleStateError",
    "DeliveryFailureError",
]
