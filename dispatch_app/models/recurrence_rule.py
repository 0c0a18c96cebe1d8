"""Recurrence value types shared by tasks, presets and the calculator."""
from dataclasses import dataclass
from enum import Enum


class RecurrenceType(str, Enum):
    """How often a task repeats."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class RecurrenceUnit(str, Enum):
    """Unit of a custom recurrence interval."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class RecurrenceBehavior(str, Enum):
    """When the next occurrence is materialized."""

    AFTER_COMPLETION = "after_completion"
    DUPLICATE_ON_SCHEDULE = "duplicate_on_schedule"


MIN_INTERVAL = 1
MAX_INTERVAL = 365


@dataclass(frozen=True)
class RecurrenceRule:
    """Validated recurrence rule: every `interval` `unit`s."""

    interval: int
    unit: RecurrenceUnit

    def to_dict(self) -> dict:
        return {"interval": self.interval, "unit": self.unit.value}


# Canonical rules behind the built-in cadences
BUILTIN_RULES = {
    RecurrenceType.DAILY: RecurrenceRule(1, RecurrenceUnit.DAY),
    RecurrenceType.WEEKLY: RecurrenceRule(1, RecurrenceUnit.WEEK),
    RecurrenceType.MONTHLY: RecurrenceRule(1, RecurrenceUnit.MONTH),
}
