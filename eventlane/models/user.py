"""User entity model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Column
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from eventlane.models.event import Event


class User(SQLModel, table=True):
    """User database model (vendors, organisers and attendees with accounts)."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(default="", max_length=255, index=True)
    name: str = Field(default="", max_length=255)
    is_active: bool = Field(default=True)
    # Category slugs the user follows for the weekly digest
    followed_categories: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=datetime.utcnow)

    events: list["Event"] = Relationship(back_populates="owner")
