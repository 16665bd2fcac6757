"""Key-value state and rate limit entity models."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class StateValue(SQLModel, table=True):
    """Process-wide named value (e.g. the weekly digest watermark)."""

    __tablename__ = "key_value_state"

    name: str = Field(primary_key=True, max_length=128)
    value: Any = Field(default=None, sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class RateLimitEntry(SQLModel, table=True):
    """One recorded request for the fixed-window rate limiter."""

    __tablename__ = "api_rate_limit"

    id: int | None = Field(default=None, primary_key=True)
    identifier: str = Field(max_length=255, index=True)
    timestamp: int = Field(index=True)
