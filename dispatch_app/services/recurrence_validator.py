"""Recurrence Validator.

Write-path counterpart of the fail-soft helpers in recurrence.py: every
malformed combination is rejected with a message the caller can show.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from dispatch_app.models.recurrence_rule import RecurrenceBehavior, RecurrenceType
from dispatch_app.models.task import Task
from dispatch_app.services.recurrence import (
    coerce_recurrence_type,
    is_valid_recurrence_behavior,
    is_valid_recurrence_type,
    normalize_recurrence_behavior,
    parse_custom_rule,
    serialize_custom_rule,
)
from dispatch_app.services.timezone import parse_iso_date

CUSTOM_RULE_REQUIRED = "Custom recurrence requires recurrenceRule with interval (1-365) and unit (day|week|month)."
RULE_MALFORMED = "recurrenceRule must include interval (1-365) and unit (day|week|month)."
RULE_REQUIRED_FOR_CUSTOM = "recurrenceRule is required when recurrenceType is custom."
RULE_ONLY_FOR_CUSTOM = "recurrenceRule can only be set when recurrenceType is custom."
DUE_DATE_REQUIRED = "dueDate is required when recurrenceBehavior is duplicate_on_schedule."
DUE_DATE_FORMAT = "dueDate must be a calendar date (YYYY-MM-DD)."
TYPE_INVALID = "recurrenceType must be one of: none, daily, weekly, monthly, custom"
BEHAVIOR_INVALID = "recurrenceBehavior must be one of: after_completion, duplicate_on_schedule"


class RecurrenceValidationError(ValueError):
    """A task write was rejected because of its recurrence settings."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


@dataclass
class RecurrenceSettings:
    """Normalized recurrence columns ready to be stored on a Task."""

    recurrence_type: str
    recurrence_behavior: str
    recurrence_rule: Optional[str]


class RecurrenceValidator:
    """Validate recurrence settings for task creates and updates."""

    @staticmethod
    def validate_due_date(due_date: Any) -> Optional[str]:
        """Return the normalized due date, or raise for a non-calendar value."""
        if due_date is None:
            return None
        if isinstance(due_date, str) and not due_date.strip():
            return None
        parsed = parse_iso_date(due_date)
        if parsed is None:
            raise RecurrenceValidationError(DUE_DATE_FORMAT, field="due_date")
        return parsed.isoformat()

    @staticmethod
    def _check_enums(recurrence_type: Any, recurrence_behavior: Any) -> None:
        if recurrence_type is not None and not is_valid_recurrence_type(recurrence_type):
            raise RecurrenceValidationError(TYPE_INVALID, field="recurrence_type")
        if recurrence_behavior is not None and not is_valid_recurrence_behavior(recurrence_behavior):
            raise RecurrenceValidationError(BEHAVIOR_INVALID, field="recurrence_behavior")

    @staticmethod
    def validate_create(
        recurrence_type: Any = None,
        recurrence_behavior: Any = None,
        recurrence_rule: Any = None,
        due_date: Any = None,
    ) -> RecurrenceSettings:
        """
        Validate recurrence settings for a new task.

        Args:
            recurrence_type: Defaults to none
            recurrence_behavior: Defaults to after_completion
            recurrence_rule: Required iff type is custom
            due_date: Required when behavior is duplicate_on_schedule

        Returns:
            RecurrenceSettings

        Raises:
            RecurrenceValidationError: On any invalid combination
        """
        RecurrenceValidator._check_enums(recurrence_type, recurrence_behavior)

        kind = RecurrenceType(recurrence_type or RecurrenceType.NONE.value)
        if kind == RecurrenceType.NONE:
            behavior = RecurrenceBehavior.AFTER_COMPLETION
        else:
            behavior = RecurrenceBehavior(recurrence_behavior or RecurrenceBehavior.AFTER_COMPLETION.value)

        rule = None
        if kind == RecurrenceType.CUSTOM:
            parsed = parse_custom_rule(recurrence_rule)
            if parsed is None:
                raise RecurrenceValidationError(CUSTOM_RULE_REQUIRED, field="recurrence_rule")
            rule = serialize_custom_rule(parsed)
        elif recurrence_rule is not None:
            raise RecurrenceValidationError(RULE_ONLY_FOR_CUSTOM, field="recurrence_rule")

        due = RecurrenceValidator.validate_due_date(due_date)
        if kind != RecurrenceType.NONE and behavior == RecurrenceBehavior.DUPLICATE_ON_SCHEDULE and not due:
            raise RecurrenceValidationError(DUE_DATE_REQUIRED, field="due_date")

        return RecurrenceSettings(kind.value, behavior.value, rule)

    @staticmethod
    def validate_update(existing: Task, changes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge a partial update with the stored task and validate the result.

        Only keys present in ``changes`` are treated as submitted; a key
        present with value None clears that field.

        Returns:
            Column updates for the recurrence fields and due date

        Raises:
            RecurrenceValidationError: On any invalid combination
        """
        has_type = "recurrence_type" in changes
        has_behavior = "recurrence_behavior" in changes
        has_rule = "recurrence_rule" in changes
        has_due = "due_date" in changes

        if has_type and changes["recurrence_type"] is None:
            raise RecurrenceValidationError(TYPE_INVALID, field="recurrence_type")
        if has_behavior and changes["recurrence_behavior"] is None:
            raise RecurrenceValidationError(BEHAVIOR_INVALID, field="recurrence_behavior")
        RecurrenceValidator._check_enums(changes.get("recurrence_type"), changes.get("recurrence_behavior"))

        if has_type:
            next_type = RecurrenceType(changes["recurrence_type"])
        else:
            next_type = coerce_recurrence_type(existing.recurrence_type) or RecurrenceType.NONE
        next_behavior = changes["recurrence_behavior"] if has_behavior else existing.recurrence_behavior
        next_rule = existing.recurrence_rule
        next_due = RecurrenceValidator.validate_due_date(changes["due_date"]) if has_due else existing.due_date

        submitted_rule = changes.get("recurrence_rule")
        if has_rule:
            if submitted_rule is None:
                next_rule = None
            else:
                parsed = parse_custom_rule(submitted_rule)
                if parsed is None:
                    raise RecurrenceValidationError(RULE_MALFORMED, field="recurrence_rule")
                next_rule = serialize_custom_rule(parsed)

        if next_type == RecurrenceType.CUSTOM:
            if not next_rule:
                raise RecurrenceValidationError(RULE_REQUIRED_FOR_CUSTOM, field="recurrence_rule")
        else:
            if has_rule and submitted_rule is not None:
                raise RecurrenceValidationError(RULE_ONLY_FOR_CUSTOM, field="recurrence_rule")
            if has_type:
                next_rule = None

        if next_type == RecurrenceType.NONE:
            next_behavior = RecurrenceBehavior.AFTER_COMPLETION.value
        elif next_behavior == RecurrenceBehavior.DUPLICATE_ON_SCHEDULE.value and not next_due:
            raise RecurrenceValidationError(DUE_DATE_REQUIRED, field="due_date")

        updates: Dict[str, Any] = {}
        if has_due:
            updates["due_date"] = next_due
        if has_type:
            updates["recurrence_type"] = next_type.value
        if has_behavior or has_type:
            updates["recurrence_behavior"] = normalize_recurrence_behavior(next_type, next_behavior).value
        if has_rule or has_type:
            updates["recurrence_rule"] = next_rule
        return updates
