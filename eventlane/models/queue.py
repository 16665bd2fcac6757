"""QueueItem entity model backing the automation job queues."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class QueueItem(SQLModel, table=True):
    """A queued job waiting for a worker.

    claimed_at is a lease: an item whose lease has expired is handed out
    again, which gives at-least-once delivery.
    """

    __tablename__ = "queue_items"

    id: int | None = Field(default=None, primary_key=True)
    queue_name: str = Field(max_length=64, index=True)
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    attempts: int = Field(default=0)
    claimed_at: datetime | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
