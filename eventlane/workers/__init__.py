"""Background workers for the automation queues.

One worker per queue:
- SalesOpenWorker
- ReminderWorker (24h and 2h instances)
- WaitlistInviteWorker
- EventCancelledWorker
- ExportReadyWorker
- WeeklyDigestWorker

Workers can be started via:
- run_worker_once(): Scan, then a single processing cycle
- run_worker_loop(): Continuous processing with interval
"""

from eventlane.workers.automation import AutomationWorker, DispatchOutcome
from eventlane.workers.base import (
    WorkerBase,
    WorkerResult,
    WorkerStatus,
)
from eventlane.workers.event_cancelled_worker import EventCancelledWorker
from eventlane.workers.export_ready_worker import ExportReadyWorker
from eventlane.workers.reminder_worker import ReminderWorker
from eventlane.workers.runner import (
    RunnerResult,
    WorkerRunner,
    build_workers,
    configure_worker_logging,
    run_worker_loop,
    run_worker_once,
)
from eventlane.workers.sales_open_worker import SalesOpenWorker
from eventlane.workers.waitlist_invite_worker import WaitlistInviteWorker
from eventlane.workers.weekly_digest_worker import WeeklyDigestWorker

__all__ = [
    # Base classes
    "WorkerBase",
    "WorkerResult",
    "WorkerStatus",
    "AutomationWorker",
    "DispatchOutcome",
    # Workers
    "SalesOpenWorker",
    "ReminderWorker",
    "WaitlistInviteWorker",
    "EventCancelledWorker",
    "ExportReadyWorker",
    "WeeklyDigestWorker",
    # Runner
    "WorkerRunner",
    "RunnerResult",
    "build_workers",
    "run_worker_once",
    "run_worker_loop",
    "configure_worker_logging",
]
