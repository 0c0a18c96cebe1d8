"""Dispatch schemas."""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

from dispatch_app.config import MAX_SUMMARY_LENGTH
from dispatch_app.schemas.task import TaskResponse


class DispatchResponse(BaseModel):
    """Schema for dispatch API responses."""
    id: str
    user_id: str
    date: str
    summary: str
    finalized: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DispatchDetailResponse(DispatchResponse):
    """A dispatch together with its live linked tasks."""
    tasks: List[TaskResponse] = Field(default_factory=list)


class DispatchSummaryUpdate(BaseModel):
    summary: str = Field(..., max_length=MAX_SUMMARY_LENGTH)


class DispatchLinkResponse(BaseModel):
    dispatch_id: str
    task_id: str
    linked: bool


class DispatchCompletionResponse(BaseModel):
    """Finalized dispatch and where its unfinished tasks went."""
    dispatch: DispatchResponse
    rolled_over: int
    next_dispatch_id: Optional[str] = None
