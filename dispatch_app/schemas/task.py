"""Task schemas."""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, Optional


class TaskCreate(BaseModel):
    """Schema for creating a task."""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    status: Optional[str] = Field(default="open", pattern=r"^(open|in_progress|done)$")
    priority: Optional[str] = Field(default="medium", pattern=r"^(low|medium|high)$")
    due_date: Optional[str] = Field(None)  # YYYY-MM-DD
    recurrence_type: Optional[str] = Field(None)  # none, daily, weekly, monthly, custom
    recurrence_behavior: Optional[str] = Field(None)  # after_completion, duplicate_on_schedule
    recurrence_rule: Optional[Any] = Field(None)  # {"interval": n, "unit": "day|week|month"}


class TaskUpdate(BaseModel):
    """Schema for updating a task. Only fields present in the body are applied."""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=5000)
    status: Optional[str] = Field(None, pattern=r"^(open|in_progress|done)$")
    priority: Optional[str] = Field(None, pattern=r"^(low|medium|high)$")
    due_date: Optional[str] = Field(None)
    recurrence_type: Optional[str] = Field(None)
    recurrence_behavior: Optional[str] = Field(None)
    recurrence_rule: Optional[Any] = Field(None)

    def submitted_fields(self) -> Dict[str, Any]:
        """Fields explicitly present in the request body."""
        return self.model_dump(exclude_unset=True)


class TaskResponse(BaseModel):
    """Schema for task API responses."""
    id: str
    user_id: str
    title: str
    description: Optional[str]
    status: str
    priority: str
    due_date: Optional[str] = None
    recurrence_type: str = "none"
    recurrence_behavior: str = "after_completion"
    recurrence_rule: Optional[str] = None  # serialized JSON rule
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TaskCompletionResponse(BaseModel):
    """Result of completing a task; next_due_date is set when the task recurred."""
    task: TaskResponse
    next_due_date: Optional[str] = None


class RecurringTaskResponse(BaseModel):
    task: TaskResponse
    cadence: str
    behavior: str
    next: Optional[str] = None
    detail: str
