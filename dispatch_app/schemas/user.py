"""User settings schemas."""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class UserSettings(BaseModel):
    """Per-user preferences. A null timeZone falls back to the server zone."""
    model_config = ConfigDict(populate_by_name=True)

    time_zone: Optional[str] = Field(None, alias="timeZone", max_length=64)
    effective_time_zone: Optional[str] = Field(None, alias="effectiveTimeZone")


class UserSettingsUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    time_zone: Optional[str] = Field(None, alias="timeZone", max_length=64)
