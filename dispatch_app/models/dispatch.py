"""Dispatch models: one planning record per user per day, plus task links."""
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, String, ForeignKey, Text, UniqueConstraint
from datetime import datetime
from typing import TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from dispatch_app.models.user import User


class Dispatch(SQLModel, table=True):
    """
    Daily dispatch.

    Lifecycle: open -> finalized. Summary edits and task links are only
    allowed while open. (user_id, date) is unique at the storage level.
    """
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_dispatch_user_date"),)

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True
    )
    user_id: str = Field(
        sa_column=Column(String, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    )
    date: str = Field(max_length=10)  # YYYY-MM-DD calendar day
    summary: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    finalized: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    user: "User" = Relationship(back_populates="dispatches")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "date": self.date,
            "summary": self.summary,
            "finalized": self.finalized,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class DispatchTask(SQLModel, table=True):
    """Membership of a task in a day's plan. The composite key keeps links unique."""
    __tablename__ = "dispatch_task"

    dispatch_id: str = Field(
        sa_column=Column(String, ForeignKey("dispatch.id", ondelete="CASCADE"), primary_key=True)
    )
    task_id: str = Field(
        sa_column=Column(String, ForeignKey("task.id", ondelete="CASCADE"), primary_key=True)
    )
