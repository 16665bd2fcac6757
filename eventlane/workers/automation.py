"""Automation worker: delivers one notification per queued job.

Every job goes through the same steps:
1. Validate the payload (invalid -> dropped, ledger untouched)
   and its dispatch (missing, or no longer SCHEDULED on redelivery -> dropped,
   ledger untouched)
2. Load the referenced entities (missing -> dispatch FAILED)
3. Re-check the ledger (already sent -> dispatch SKIPPED)
4. Check eligibility (e.g. cancelled event -> dispatch SKIPPED)
5. Hand the message to the messenger
6. Success -> dispatch SENT plus an audit entry
7. Messenger error -> dispatch FAILED with the error message

Subclasses implement deliver() for one notification kind and raise the
errors in eventlane.jobs.errors; handle() is the single place those
errors become ledger transitions.
"""

import logging
from collections import Counter
from datetime import datetime
from enum import Enum
from typing import Any

from sqlmodel import Session

from eventlane.config import Settings, get_settings
from eventlane.jobs.errors import (
    AlreadyProcessedError,
    DeliveryFailureError,
    EntityNotFoundError,
    IneligibleStateError,
    MissingDataError,
)
from eventlane.jobs.queue import DatabaseQueue
from eventlane.jobs.types import AutomationJob, parse_job, queue_for
from eventlane.models.dispatch import DispatchStatus, NotificationType
from eventlane.models.event import Event
from eventlane.models.queue import QueueItem
from eventlane.services.audit import AutomationAuditLogger
from eventlane.services.dispatch import DispatchLedger
from eventlane.services.event_state import CLOSED_STATES, EventStateResolver
from eventlane.services.messaging import Messenger, get_messenger
from eventlane.workers.base import WorkerBase, WorkerResult

logger = logging.getLogger(__name__)

AUDIT_ACTION_SENT = "notification_sent"


class DispatchOutcome(str, Enum):
    """What happened to one job."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"
    DROPPED = "dropped"  # Invalid payload or stale delivery; ledger untouched


class AutomationWorker(WorkerBase[QueueItem]):
    """Consumes one automation queue.

    Subclasses set notification_types and job_model and implement deliver().
    """

    notification_types: tuple[NotificationType, ...] = ()
    job_model: type[AutomationJob] = AutomationJob

    def __init__(
        self,
        batch_size: int = 50,
        max_retries: int = 3,
        messenger: Messenger | None = None,
        settings: Settings | None = None,
    ) -> None:
        super().__init__(batch_size=batch_size, max_retries=max_retries)
        self.messenger = messenger or get_messenger()
        self.settings = settings or get_settings()
        self.outcomes: Counter[str] = Counter()

    @property
    def worker_name(self) -> str:
        return self.__class__.__name__

    @property
    def queue_name(self) -> str:
        return queue_for(self.notification_types[0])

    # -------------------------------------------------------------------------
    # Queue plumbing
    # -------------------------------------------------------------------------

    def run(self, session: Session) -> WorkerResult:
        self.outcomes = Counter()
        result = super().run(session)
        result.metadata["queue"] = self.queue_name
        result.metadata["outcomes"] = dict(self.outcomes)
        return result

    def fetch_pending(self, session: Session) -> list[QueueItem]:
        return DatabaseQueue(session).fetch_claimable(self.queue_name, self.batch_size)

    def mark_processing(self, session: Session, item: QueueItem) -> bool:
        if not DatabaseQueue(session).claim(item):
            return False
        # Commit the lease so other consumers see it
        session.commit()
        return True

    def process_item(self, session: Session, item: QueueItem) -> None:
        outcome = self.handle(session, item.payload)
        self.outcomes[outcome.value] += 1

    def mark_completed(self, session: Session, item: QueueItem) -> None:
        DatabaseQueue(session).delete_item(item)

    def mark_failed(self, session: Session, item: QueueItem, error: str, can_retry: bool) -> None:
        queue = DatabaseQueue(session)
        if can_retry:
            queue.release_item(item)
            return

        queue.delete_item(item)
        self.outcomes[DispatchOutcome.DROPPED.value] += 1
        self._logger.error(
            f"[{self.worker_name}] Giving up on queue item {item.id} after {item.attempts} attempts",
            extra={"item_id": item.id, "attempts": item.attempts, "error": error},
        )

    def get_item_id(self, item: QueueItem) -> int:
        return item.id

    # -------------------------------------------------------------------------
    # Job contract
    # -------------------------------------------------------------------------

    def handle(
        self,
        session: Session,
        payload: dict[str, Any],
        now: datetime | None = None,
    ) -> DispatchOutcome:
        """Process one job payload and settle its dispatch record.

        Does not commit. Errors outside the automation taxonomy (storage
        errors) propagate to the caller.
        """
        now = now or datetime.utcnow()

        try:
            job = self.parse(payload)
        except MissingDataError as e:
            self._logger.error(
                f"[{self.worker_name}] Dropping job: {e.reason}",
                extra={"queue": self.queue_name, "reason": e.reason},
            )
            return DispatchOutcome.DROPPED

        ledger = DispatchLedger(session)
        record = ledger.get_dispatch(job.dispatch_id)
        if record is None:
            self._logger.error(
                f"[{self.worker_name}] Dropping job: dispatch {job.dispatch_id} not found",
                extra={"dispatch_id": job.dispatch_id},
            )
            return DispatchOutcome.DROPPED
        if record.status != DispatchStatus.SCHEDULED:
            # Redelivery of a job that was already settled
            self._logger.warning(
                f"[{self.worker_name}] Dispatch {job.dispatch_id} already {record.status.value}",
                extra={"dispatch_id": job.dispatch_id, "status": record.status.value},
            )
            return DispatchOutcome.DROPPED

        try:
            self.deliver(session, job, now)
        except EntityNotFoundError as e:
            ledger.mark_failed(job.dispatch_id, e.reason)
            self._logger.warning(
                f"[{self.worker_name}] {e.reason}",
                extra={"dispatch_id": job.dispatch_id, "reason": e.reason},
            )
            return DispatchOutcome.FAILED
        except (AlreadyProcessedError, IneligibleStateError) as e:
            ledger.mark_skipped(job.dispatch_id, e.reason)
            self._logger.info(
                f"[{self.worker_name}] Skipped dispatch {job.dispatch_id}: {e.reason}",
                extra={"dispatch_id": job.dispatch_id, "reason": e.reason},
            )
            return DispatchOutcome.SKIPPED
        except DeliveryFailureError as e:
            ledger.mark_failed(job.dispatch_id, e.reason)
            self._logger.error(
                f"[{self.worker_name}] Failed to send {job.kind}: {e.reason}",
                extra={"dispatch_id": job.dispatch_id, "error": e.reason},
            )
            return DispatchOutcome.FAILED

        return DispatchOutcome.SENT

    def parse(self, payload: dict[str, Any]) -> AutomationJob:
        """Validate a payload for this worker's kinds.

        Raises:
            MissingDataError: Invalid payload or a kind this worker does not handle
        """
        if "kind" not in payload and len(self.notification_types) == 1:
            payload = {**payload, "kind": self.notification_types[0].value}

        job = parse_job(payload)
        if job.notification_type not in self.notification_types:
            raise MissingDataError(f"Unexpected job kind {job.kind} on {self.queue_name}")
        return job

    def deliver(self, session: Session, job: AutomationJob, now: datetime) -> None:
        """Run steps 2-7 for one job. Implemented per notification kind."""
        raise NotImplementedError

    # -------------------------------------------------------------------------
    # Helpers for deliver()
    # -------------------------------------------------------------------------

    def load_event(self, session: Session, event_id: int) -> Event:
        event = session.get(Event, event_id)
        if event is None:
            raise EntityNotFoundError("Event not found")
        return event

    def ensure_not_sent(
        self,
        ledger: DispatchLedger,
        event_id: int | None,
        notification_type: NotificationType,
        recipient_hash: str,
        since: datetime | None = None,
        reason: str = "Already sent",
    ) -> None:
        if ledger.is_already_sent(event_id, notification_type, recipient_hash, since=since):
            raise AlreadyProcessedError(reason)

    def ensure_event_open(self, session: Session, event: Event, now: datetime) -> None:
        """Skip notifications for cancelled or ended events."""
        state = EventStateResolver(session, now).resolve_state(event)
        if state in CLOSED_STATES:
            raise IneligibleStateError(f"Event is {state.value}")

    def send(
        self,
        session: Session,
        job: AutomationJob,
        event_id: int | None,
        recipient_hash: str,
        template: str,
        recipient: str,
        context: dict[str, Any],
        audit_metadata: dict[str, Any] | None = None,
    ) -> None:
        """Queue the message, then record the send.

        Raises:
            DeliveryFailureError: If the messenger raised
        """
        try:
            self.messenger.queue(template, recipient, context)
        except Exception as e:
            raise DeliveryFailureError(str(e)) from e

        DispatchLedger(session).mark_sent(job.dispatch_id)
        AutomationAuditLogger(session).log(
            event_id,
            AUDIT_ACTION_SENT,
            job.notification_type,
            recipient_hash,
            audit_metadata,
        )
        self._logger.info(
            f"[{self.worker_name}] Sent {job.kind} notification",
            extra={"dispatch_id": job.dispatch_id, "event_id": event_id, "template": template},
        )
