"""Worker runner for the automation queues.

Entry points:
- run_worker_once(): Optional scan, then one cycle of every worker
- run_worker_loop(): The same on an interval until interrupted
"""

import logging
import signal
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlmodel import Session

from eventlane.config import get_settings
from eventlane.db.session import engine
from eventlane.models.dispatch import NotificationType
from eventlane.services.messaging import Messenger
from eventlane.services.scheduler import AutomationScheduler, ScanReport
from eventlane.workers.automation import AutomationWorker
from eventlane.workers.base import WorkerResult
from eventlane.workers.event_cancelled_worker import EventCancelledWorker
from eventlane.workers.export_ready_worker import ExportReadyWorker
from eventlane.workers.reminder_worker import ReminderWorker
from eventlane.workers.sales_open_worker import SalesOpenWorker
from eventlane.workers.waitlist_invite_worker import WaitlistInviteWorker
from eventlane.workers.weekly_digest_worker import WeeklyDigestWorker

logger = logging.getLogger(__name__)


@dataclass
class RunnerResult:
    """Result of a complete runner cycle.

    Attributes:
        started_at: When the run started
        completed_at: When the run completed
        scan: Scanner report, if a scan ran
        workers_run: Number of workers executed
        total_processed: Total items processed across all workers
        total_failed: Total items failed across all workers
        worker_results: Individual results per worker
        errors: Top-level errors during run
    """

    started_at: datetime
    completed_at: datetime | None = None
    scan: ScanReport | None = None
    workers_run: int = 0
    total_processed: int = 0
    total_failed: int = 0
    worker_results: dict[str, WorkerResult] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": (
                (self.completed_at - self.started_at).total_seconds() * 1000
                if self.completed_at
                else None
            ),
            "scan": self.scan.to_dict() if self.scan else None,
            "workers_run": self.workers_run,
            "total_processed": self.total_processed,
            "total_failed": self.total_failed,
            "worker_results": {
                name: result.to_dict()
                for name, result in self.worker_results.items()
            },
            "errors": self.errors,
        }


def build_workers(
    batch_size: int,
    max_retries: int,
    messenger: Messenger | None = None,
) -> list[AutomationWorker]:
    """One worker per automation queue."""
    options = {"batch_size": batch_size, "max_retries": max_retries, "messenger": messenger}
    return [
        SalesOpenWorker(**options),
        ReminderWorker(NotificationType.REMINDER_24H, **options),
        ReminderWorker(NotificationType.REMINDER_2H, **options),
        WaitlistInviteWorker(**options),
        EventCancelledWorker(**options),
        ExportReadyWorker(**options),
        WeeklyDigestWorker(**options),
    ]


class WorkerRunner:
    """Runs the scanner and every automation worker.

    Usage:
        runner = WorkerRunner()
        result = runner.run_once()
    """

    def __init__(
        self,
        batch_size: int | None = None,
        max_retries: int | None = None,
        scan: bool = True,
        messenger: Messenger | None = None,
    ) -> None:
        """Initialize the worker runner.

        Args:
            batch_size: Override default batch size
            max_retries: Override default max retries
            scan: Run the scanner before the workers
            messenger: Override the configured messenger
        """
        settings = get_settings()
        self.batch_size = batch_size or settings.WORKER_BATCH_SIZE
        self.max_retries = max_retries or settings.WORKER_MAX_RETRIES
        self.scan = scan

        self._workers = build_workers(self.batch_size, self.max_retries, messenger)

        self._logger = logging.getLogger(self.__class__.__name__)
        self._shutdown_requested = False

    @property
    def workers(self) -> list[AutomationWorker]:
        return list(self._workers)

    def run_once(self, session: Session | None = None, now: datetime | None = None) -> RunnerResult:
        """Execute one complete cycle.

        Args:
            session: Optional database session (creates new if not provided)
            now: Scan instant, for tests

        Returns:
            RunnerResult with aggregated statistics
        """
        result = RunnerResult(started_at=datetime.utcnow())

        self._logger.info(
            "Starting worker run",
            extra={"batch_size": self.batch_size, "max_retries": self.max_retries, "scan": self.scan},
        )

        own_session = session is None
        if own_session:
            session = Session(engine)

        try:
            if self.scan:
                try:
                    result.scan = AutomationScheduler(session).scan(now)
                except Exception as e:
                    session.rollback()
                    error_msg = f"Scanner failed: {str(e)}"
                    result.errors.append(error_msg)
                    self._logger.error(error_msg, exc_info=True)

            for worker in self._workers:
                try:
                    worker_result = worker.run(session)
                    result.worker_results[worker.worker_name] = worker_result
                    result.workers_run += 1
                    result.total_processed += worker_result.processed_count
                    result.total_failed += worker_result.failed_count

                except Exception as e:
                    session.rollback()
                    error_msg = f"{worker.worker_name} failed: {str(e)}"
                    result.errors.append(error_msg)
                    self._logger.error(
                        error_msg,
                        extra={"worker": worker.worker_name},
                        exc_info=True,
                    )

        finally:
            if own_session:
                session.close()

        result.completed_at = datetime.utcnow()

        self._logger.info(
            "Worker run completed",
            extra=result.to_dict(),
        )

        return result

    def run_loop(
        self,
        interval_seconds: int | None = None,
        max_iterations: int | None = None,
    ) -> None:
        """Run continuously in a loop.

        Args:
            interval_seconds: Seconds between cycles (default from config)
            max_iterations: Max cycles to run (None for infinite)
        """
        settings = get_settings()
        interval = interval_seconds or settings.WORKER_POLL_INTERVAL_SECONDS
        iterations = 0

        self._setup_signal_handlers()

        self._logger.info(
            "Starting worker loop",
            extra={
                "interval_seconds": interval,
                "max_iterations": max_iterations,
            },
        )

        try:
            while not self._shutdown_requested:
                if max_iterations is not None and iterations >= max_iterations:
                    self._logger.info(f"Reached max iterations ({max_iterations}), stopping")
                    break

                result = self.run_once()
                iterations += 1

                self._logger.info(
                    f"Iteration {iterations} complete",
                    extra={
                        "processed": result.total_processed,
                        "failed": result.total_failed,
                    },
                )

                if not self._shutdown_requested:
                    self._logger.debug(f"Sleeping for {interval} seconds")
                    time.sleep(interval)

        except KeyboardInterrupt:
            self._logger.info("Keyboard interrupt received, shutting down")

        self._logger.info(
            "Worker loop stopped",
            extra={"total_iterations": iterations},
        )

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def handle_signal(signum, frame):
            self._logger.info(f"Received signal {signum}, requesting shutdown")
            self._shutdown_requested = True

        signal.signal(signal.SIGINT, handle_signal)
        signal.signal(signal.SIGTERM, handle_signal)

    def request_shutdown(self) -> None:
        """Request graceful shutdown of the loop."""
        self._shutdown_requested = True


def run_worker_once(
    batch_size: int | None = None,
    max_retries: int | None = None,
    scan: bool = True,
) -> RunnerResult:
    """Scan (optionally) and run every worker once.

    Example:
        >>> from eventlane.workers import run_worker_once
        >>> result = run_worker_once()
        >>> print(f"Processed: {result.total_processed}")
    """
    runner = WorkerRunner(batch_size=batch_size, max_retries=max_retries, scan=scan)
    return runner.run_once()


def run_worker_loop(
    interval_seconds: int | None = None,
    max_iterations: int | None = None,
    batch_size: int | None = None,
    max_retries: int | None = None,
    scan: bool = True,
) -> None:
    """Run continuously until interrupted (Ctrl+C) or max_iterations reached."""
    runner = WorkerRunner(batch_size=batch_size, max_retries=max_retries, scan=scan)
    runner.run_loop(
        interval_seconds=interval_seconds,
        max_iterations=max_iterations,
    )


def configure_worker_logging(level: int = logging.INFO) -> None:
    """Configure logging for worker processes.

    Args:
        level: Logging level (default: INFO)
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    logging.getLogger("eventlane").setLevel(level)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
