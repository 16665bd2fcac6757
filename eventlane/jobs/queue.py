"""Database-backed job queue.

Queue items live in the queue_items table:
1. Producers add items inside their own transaction (ledger row + item commit together)
2. Workers claim items by stamping claimed_at (a lease)
3. Completed items are deleted; failed ones are released for redelivery
4. Items whose lease expired are handed out again (at-least-once delivery)
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlmodel import Session, select

from eventlane.config import get_settings
from eventlane.jobs.types import AutomationJob, queue_for
from eventlane.models.queue import QueueItem

logger = logging.getLogger(__name__)


class DatabaseQueue:
    """Named FIFO queues stored in a single table."""

    def __init__(self, session: Session, lease_seconds: int | None = None) -> None:
        """Initialize the queue.

        Args:
            session: Database session (caller manages the transaction)
            lease_seconds: How long a claim blocks redelivery
        """
        self.session = session
        self.lease_seconds = lease_seconds or get_settings().QUEUE_LEASE_SECONDS

    def create_item(self, queue_name: str, payload: dict[str, Any]) -> QueueItem:
        """Add a raw payload to a queue.

        Does not commit; the caller owns the transaction.
        """
        item = QueueItem(queue_name=queue_name, payload=payload)
        self.session.add(item)
        self.session.flush()
        return item

    def enqueue(self, job: AutomationJob) -> QueueItem:
        """Push a job onto the queue for its notification kind."""
        item = self.create_item(queue_for(job.notification_type), job.to_payload())
        logger.debug(
            f"Enqueued {job.kind} job",
            extra={"queue": item.queue_name, "dispatch_id": job.dispatch_id},
        )
        return item

    def fetch_claimable(
        self,
        queue_name: str,
        limit: int,
        now: datetime | None = None,
    ) -> list[QueueItem]:
        """Fetch unclaimed items, or items whose lease expired, oldest first."""
        now = now or datetime.utcnow()
        lease_cutoff = now - timedelta(seconds=self.lease_seconds)

        items = self.session.exec(
            select(QueueItem)
            .where(QueueItem.queue_name == queue_name)
            .where(
                (QueueItem.claimed_at == None)  # noqa: E711
                | (QueueItem.claimed_at < lease_cutoff)
            )
            .order_by(QueueItem.created_at, QueueItem.id)
            .limit(limit)
        ).all()
        return list(items)

    def claim(self, item: QueueItem, now: datetime | None = None) -> bool:
        """Take the lease on an item.

        Returns:
            False if another consumer holds a live lease on it
        """
        now = now or datetime.utcnow()
        if item.claimed_at is not None and item.claimed_at >= now - timedelta(seconds=self.lease_seconds):
            return False

        item.claimed_at = now
        item.attempts += 1
        self.session.add(item)
        self.session.flush()
        return True

    def delete_item(self, item: QueueItem) -> None:
        """Remove a finished item."""
        self.session.delete(item)

    def release_item(self, item: QueueItem) -> None:
        """Drop the lease so the item is redelivered on the next poll."""
        item.claimed_at = None
        self.session.add(item)
