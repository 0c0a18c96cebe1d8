"""Task model for SQLModel."""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, String, ForeignKey, Text
from datetime import datetime
from typing import TYPE_CHECKING, Optional
import uuid

from dispatch_app.models.recurrence_rule import RecurrenceBehavior, RecurrenceType

if TYPE_CHECKING:
    from dispatch_app.models.user import User

TASK_STATUSES = ("open", "in_progress", "done")
TASK_PRIORITIES = ("low", "medium", "high")


class Task(SQLModel, table=True):
    """Task entity with recurrence settings."""

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True
    )
    user_id: str = Field(
        sa_column=Column(String, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    )
    title: str = Field(max_length=500, min_length=1)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    status: str = Field(default="open", max_length=20)  # open, in_progress, done
    priority: str = Field(default="medium", max_length=20)  # low, medium, high
    due_date: Optional[str] = Field(default=None, max_length=10, index=True)  # YYYY-MM-DD calendar day

    recurrence_type: str = Field(default=RecurrenceType.NONE.value, max_length=20)
    recurrence_behavior: str = Field(default=RecurrenceBehavior.AFTER_COMPLETION.value, max_length=32)
    recurrence_rule: Optional[str] = Field(default=None, sa_column=Column(Text))  # JSON {"interval", "unit"}

    deleted_at: Optional[datetime] = Field(default=None)  # soft delete marker
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    user: "User" = Relationship(back_populates="tasks")

    @property
    def is_done(self) -> bool:
        return self.status == "done"

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_type != RecurrenceType.NONE.value

    def to_dict(self) -> dict:
        """Serialize for tool and API responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "due_date": self.due_date,
            "recurrence_type": self.recurrence_type,
            "recurrence_behavior": self.recurrence_behavior,
            "recurrence_rule": self.recurrence_rule,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
