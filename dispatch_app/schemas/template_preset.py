"""Template preset schemas.

Presets are stored as one JSON document per user with camelCase keys, so
every model serializes by alias.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class TaskTemplatePreset(BaseModel):
    """Saved title/description pair used to instantiate a task."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    title: str
    description: str = ""
    recurrence_type: str = Field(default="none", alias="recurrenceType")
    recurrence_behavior: str = Field(default="after_completion", alias="recurrenceBehavior")
    recurrence_rule: Optional[str] = Field(default=None, alias="recurrenceRule")  # serialized JSON


class TextTemplatePreset(BaseModel):
    """Saved free-text body for notes and dispatch summaries."""
    id: str
    name: str
    content: str


class TemplatePresets(BaseModel):
    """All presets owned by one user."""
    tasks: List[TaskTemplatePreset] = Field(default_factory=list)
    notes: List[TextTemplatePreset] = Field(default_factory=list)
    dispatches: List[TextTemplatePreset] = Field(default_factory=list)


class RenderTemplateRequest(BaseModel):
    """Schema for previewing a template."""
    template: Optional[str] = Field(None, max_length=20000)
    reference_date: Optional[str] = Field(None, alias="referenceDate")  # ISO date or datetime
    time_zone: Optional[str] = Field(None, alias="timeZone")

    model_config = ConfigDict(populate_by_name=True)


class RenderTemplateResponse(BaseModel):
    rendered: str


class InstantiateTaskPresetRequest(BaseModel):
    """Options for creating a task from a task preset."""
    reference_date: Optional[str] = Field(None, alias="referenceDate")
    due_date: Optional[str] = Field(None, alias="dueDate")

    model_config = ConfigDict(populate_by_name=True)
