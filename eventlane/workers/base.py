"""Base worker abstraction for queue consumers.

A worker runs in cycles. Each cycle:
1. Fetches a batch of claimable items
2. Claims each item (a lease, so concurrent consumers skip it)
3. Processes it and commits the outcome together with its completion
4. On an unexpected error rolls back and either releases the item for
   redelivery or gives up on it

Workers are plain objects driven by WorkerRunner or called directly in tests.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from sqlmodel import Session

logger = logging.getLogger(__name__)


class WorkerStatus(str, Enum):
    """Status of a worker run."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some items processed, some failed
    FAILED = "failed"
    NO_WORK = "no_work"


@dataclass
class WorkerResult:
    """Result of a worker processing cycle.

    Attributes:
        status: Overall status of the worker run
        processed_count: Items taken off the queue with a final outcome
        failed_count: Items that raised and were released or given up
        duration_ms: Time taken for the processing cycle
        errors: Error details for failed items
        metadata: Worker-specific statistics
    """

    status: WorkerStatus
    processed_count: int = 0
    failed_count: int = 0
    duration_ms: float = 0.0
    errors: list[dict[str, Any]] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "status": self.status.value,
            "processed_count": self.processed_count,
            "failed_count": self.failed_count,
            "duration_ms": self.duration_ms,
            "errors": self.errors,
            "metadata": self.metadata,
        }


# Generic type for work items
T = TypeVar("T")


class WorkerBase(ABC, Generic[T]):
    """Abstract base class for background workers.

    Lifecycle per item:
    1. fetch_pending() - Get items to process
    2. mark_processing() - Take the item (returns False if someone else has it)
    3. process_item() - Do the actual work
    4. mark_completed() or mark_failed() - Settle the item
    """

    def __init__(self, batch_size: int = 50, max_retries: int = 3) -> None:
        """Initialize the worker.

        Args:
            batch_size: Maximum items to process per cycle
            max_retries: Deliveries allowed before an item is given up
        """
        self.batch_size = batch_size
        self.max_retries = max_retries
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    @abstractmethod
    def worker_name(self) -> str:
        """Return the worker name for logging."""

    @abstractmethod
    def fetch_pending(self, session: Session) -> list[T]:
        """Fetch up to batch_size items to process."""

    @abstractmethod
    def mark_processing(self, session: Session, item: T) -> bool:
        """Take an item.

        Returns:
            True if taken, False if another consumer is processing it
        """

    @abstractmethod
    def process_item(self, session: Session, item: T) -> None:
        """Process a single item.

        Raises:
            Exception: If processing fails unexpectedly
        """

    @abstractmethod
    def mark_completed(self, session: Session, item: T) -> None:
        """Settle an item that was processed."""

    @abstractmethod
    def mark_failed(self, session: Session, item: T, error: str, can_retry: bool) -> None:
        """Settle an item whose processing raised.

        Args:
            session: Database session (already rolled back)
            item: The failed item
            error: Error message
            can_retry: Whether the item may be delivered again
        """

    @abstractmethod
    def get_item_id(self, item: T) -> int:
        """Get the identifier used in logs."""

    def should_retry(self, item: T) -> bool:
        """Check if an item may be delivered again.

        Default implementation compares the item's attempts to max_retries.
        """
        if hasattr(item, "attempts"):
            return item.attempts < self.max_retries
        return False

    def run(self, session: Session) -> WorkerResult:
        """Execute one processing cycle.

        Args:
            session: Database session

        Returns:
            WorkerResult with processing statistics
        """
        start_time = datetime.utcnow()
        processed = 0
        failed = 0
        errors: list[dict[str, Any]] = []

        self._logger.debug(
            f"[{self.worker_name}] Starting processing cycle",
            extra={"batch_size": self.batch_size},
        )

        try:
            items = self.fetch_pending(session)

            if not items:
                self._logger.debug(f"[{self.worker_name}] No pending items")
                return WorkerResult(
                    status=WorkerStatus.NO_WORK,
                    duration_ms=self._elapsed_ms(start_time),
                )

            self._logger.info(f"[{self.worker_name}] Found {len(items)} items to process")

            for item in items:
                item_id = self.get_item_id(item)

                try:
                    if not self.mark_processing(session, item):
                        self._logger.debug(f"[{self.worker_name}] Item {item_id} already claimed")
                        continue

                    self.process_item(session, item)

                    self.mark_completed(session, item)
                    session.commit()

                    processed += 1

                except Exception as e:
                    session.rollback()
                    failed += 1
                    error_msg = str(e)[:500]

                    can_retry = self.should_retry(item)
                    self.mark_failed(session, item, error_msg, can_retry)
                    session.commit()

                    errors.append({
                        "item_id": item_id,
                        "error": error_msg,
                        "can_retry": can_retry,
                    })

                    self._logger.error(
                        f"[{self.worker_name}] Failed to process item {item_id}",
                        extra={
                            "item_id": item_id,
                            "error": error_msg,
                            "can_retry": can_retry,
                        },
                        exc_info=True,
                    )

        except Exception as e:
            self._logger.error(
                f"[{self.worker_name}] Worker cycle failed",
                extra={"error": str(e)},
                exc_info=True,
            )
            return WorkerResult(
                status=WorkerStatus.FAILED,
                processed_count=processed,
                failed_count=failed,
                duration_ms=self._elapsed_ms(start_time),
                errors=errors + [{"error": str(e)}],
            )

        if failed == 0 and processed > 0:
            status = WorkerStatus.SUCCESS
        elif processed > 0 and failed > 0:
            status = WorkerStatus.PARTIAL
        elif failed > 0:
            status = WorkerStatus.FAILED
        else:
            status = WorkerStatus.NO_WORK

        result = WorkerResult(
            status=status,
            processed_count=processed,
            failed_count=failed,
            duration_ms=self._elapsed_ms(start_time),
            errors=errors,
        )

        self._logger.info(
            f"[{self.worker_name}] Cycle complete",
            extra=result.to_dict(),
        )

        return result

    def _elapsed_ms(self, start: datetime) -> float:
        """Calculate elapsed time in milliseconds."""
        return (datetime.utcnow() - start).total_seconds() * 1000
