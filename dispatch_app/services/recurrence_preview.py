"""Preview of a task's upcoming occurrence for the recurring-tasks view."""
from dataclasses import dataclass
from typing import Optional

from dispatch_app.models.recurrence_rule import RecurrenceBehavior
from dispatch_app.models.task import Task
from dispatch_app.services.recurrence import (
    describe_recurrence,
    next_occurrence,
    next_occurrence_on_or_after,
    normalize_recurrence_behavior,
)
from dispatch_app.services.timezone import today_iso_date

RECURRENCE_BEHAVIOR_LABELS = {
    RecurrenceBehavior.AFTER_COMPLETION: "After Completion",
    RecurrenceBehavior.DUPLICATE_ON_SCHEDULE: "Duplicate On Schedule",
}


@dataclass
class RecurrencePreview:
    cadence: str
    behavior: str
    next: Optional[str]
    detail: str

    def to_dict(self) -> dict:
        return {
            "cadence": self.cadence,
            "behavior": self.behavior,
            "next": self.next,
            "detail": self.detail,
        }


def recurrence_preview(task: Task, today: Optional[str] = None, time_zone: Optional[str] = None) -> RecurrencePreview:
    """
    Describe when a task will next recur.

    Args:
        task: Task carrying recurrence fields
        today: Calendar day to preview from, defaults to today in time_zone
        time_zone: User's zone preference

    Returns:
        RecurrencePreview with cadence, next date and a one-line explanation
    """
    today = today or today_iso_date(time_zone)
    cadence = describe_recurrence(task.recurrence_type, task.recurrence_rule)
    behavior = normalize_recurrence_behavior(task.recurrence_type, task.recurrence_behavior)
    label = RECURRENCE_BEHAVIOR_LABELS[behavior]

    if behavior == RecurrenceBehavior.AFTER_COMPLETION:
        upcoming = next_occurrence(task.due_date or today, task.recurrence_type, task.recurrence_rule)
        if upcoming:
            detail = f"If completed today, next occurrence is {upcoming}."
        else:
            detail = "Set a valid recurrence rule to preview the next occurrence."
        return RecurrencePreview(cadence, label, upcoming, detail)

    if not task.due_date:
        return RecurrencePreview(cadence, label, None, "Add a due date to anchor schedule-based duplicates.")

    upcoming = next_occurrence_on_or_after(task.due_date, task.recurrence_type, task.recurrence_rule, today)
    if upcoming:
        detail = f"Next scheduled duplicate: {upcoming}."
    else:
        detail = "Unable to calculate the next duplicate date."
    return RecurrencePreview(cadence, label, upcoming, detail)
