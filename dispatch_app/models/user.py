"""User model for SQLModel."""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, Text
from datetime import datetime
from typing import TYPE_CHECKING, Optional
import uuid

if TYPE_CHECKING:
    from dispatch_app.models.task import Task
    from dispatch_app.models.dispatch import Dispatch


class User(SQLModel, table=True):
    """User entity owning tasks, dispatches and template presets."""

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True
    )
    email: str = Field(unique=True, index=True, max_length=255)
    name: str | None = Field(default=None, max_length=255)
    time_zone: Optional[str] = Field(default=None, max_length=64)  # IANA name, e.g. "Europe/Berlin"
    template_presets: Optional[str] = Field(default=None, sa_column=Column(Text))  # JSON payload
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tasks: list["Task"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
    dispatches: list["Dispatch"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"}
    )
