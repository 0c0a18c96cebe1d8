"""
Recurrence rules and next-occurrence calculation.

Rules are read from loosely-typed storage (JSON text, dicts from request
bodies, preset payloads), so everything in this module is fail-soft: a
malformed rule or anchor yields None, never an exception. Write-path
validation lives in RecurrenceValidator.
"""
from datetime import date, timedelta
from typing import Any, Mapping, Optional
import calendar
import json
import logging

from dispatch_app.models.recurrence_rule import (
    BUILTIN_RULES,
    MAX_INTERVAL,
    MIN_INTERVAL,
    RecurrenceBehavior,
    RecurrenceRule,
    RecurrenceType,
    RecurrenceUnit,
)
from dispatch_app.services.timezone import format_iso_date, parse_iso_date

logger = logging.getLogger(__name__)

# Hard ceiling on forward search steps
MAX_FORWARD_STEPS = 4000

_UNIT_PLURALS = {
    RecurrenceUnit.DAY: "days",
    RecurrenceUnit.WEEK: "weeks",
    RecurrenceUnit.MONTH: "months",
}


def is_valid_recurrence_type(value: Any) -> bool:
    # Enum members hash by name, so compare on the plain value
    if isinstance(value, RecurrenceType):
        return True
    return isinstance(value, str) and value in {t.value for t in RecurrenceType}


def is_valid_recurrence_behavior(value: Any) -> bool:
    if isinstance(value, RecurrenceBehavior):
        return True
    return isinstance(value, str) and value in {b.value for b in RecurrenceBehavior}


def coerce_recurrence_type(value: Any) -> Optional[RecurrenceType]:
    """Map a stored/user value onto RecurrenceType, or None if unknown."""
    if not is_valid_recurrence_type(value):
        return None
    return RecurrenceType(value)


def normalize_recurrence_behavior(recurrence_type: Any, behavior: Any) -> RecurrenceBehavior:
    """
    Behavior that should be stored for a given type.

    A non-recurring task has nothing to duplicate, so it is always
    after_completion. Unknown behaviors default to after_completion.
    """
    if coerce_recurrence_type(recurrence_type) in (None, RecurrenceType.NONE):
        return RecurrenceBehavior.AFTER_COMPLETION
    if is_valid_recurrence_behavior(behavior):
        return RecurrenceBehavior(behavior)
    return RecurrenceBehavior.AFTER_COMPLETION


def _coerce_interval(value: Any) -> Optional[int]:
    # bool is an int subclass but never a valid interval
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if not isinstance(value, int):
        return None
    if value < MIN_INTERVAL or value > MAX_INTERVAL:
        return None
    return value


def parse_custom_rule(value: Any) -> Optional[RecurrenceRule]:
    """
    Normalize a stored or submitted custom rule.

    Accepts a RecurrenceRule, a mapping with ``interval`` and ``unit``, or
    the JSON encoding of such a mapping.

    Returns:
        RecurrenceRule, or None for anything malformed
    """
    if isinstance(value, RecurrenceRule):
        value = value.to_dict()

    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except ValueError:
            return None
        if isinstance(decoded, str):
            return None
        return parse_custom_rule(decoded)

    if not isinstance(value, Mapping):
        return None

    interval = _coerce_interval(value.get("interval"))
    if interval is None:
        return None

    unit = value.get("unit")
    if isinstance(unit, RecurrenceUnit):
        unit = unit.value
    if not isinstance(unit, str) or unit not in {u.value for u in RecurrenceUnit}:
        return None

    return RecurrenceRule(interval=interval, unit=RecurrenceUnit(unit))


def serialize_custom_rule(rule: RecurrenceRule) -> str:
    """JSON form stored in Task.recurrence_rule."""
    return json.dumps(rule.to_dict())


def resolve_rule(recurrence_type: Any, raw_rule: Any = None) -> Optional[RecurrenceRule]:
    """Canonical rule for a type; only custom consults the stored rule."""
    kind = coerce_recurrence_type(recurrence_type)
    if kind is None or kind == RecurrenceType.NONE:
        return None
    if kind == RecurrenceType.CUSTOM:
        return parse_custom_rule(raw_rule)
    return BUILTIN_RULES[kind]


def describe_recurrence(recurrence_type: Any, raw_rule: Any = None) -> str:
    """Human-readable cadence, e.g. "Every day" or "Every 3 weeks"."""
    rule = resolve_rule(recurrence_type, raw_rule)
    if rule is None:
        if coerce_recurrence_type(recurrence_type) == RecurrenceType.CUSTOM:
            return "Custom recurrence"
        return "No recurrence"

    if rule.interval == 1:
        return f"Every {rule.unit.value}"
    return f"Every {rule.interval} {_UNIT_PLURALS[rule.unit]}"


def add_months_clamped(anchor: date, months: int) -> date:
    """
    Add calendar months, clamping the day to the target month's length.

    Jan 31 + 1 month is Feb 28 (or 29), never Mar 3.
    """
    month_index = anchor.year * 12 + (anchor.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor.day, last_day))


def _advance(anchor: date, rule: RecurrenceRule) -> date:
    if rule.unit == RecurrenceUnit.DAY:
        return anchor + timedelta(days=rule.interval)
    if rule.unit == RecurrenceUnit.WEEK:
        return anchor + timedelta(days=rule.interval * 7)
    return add_months_clamped(anchor, rule.interval)


def next_occurrence(anchor_date: Any, recurrence_type: Any, raw_rule: Any = None) -> Optional[str]:
    """
    Compute the single next occurrence after an anchor date.

    Args:
        anchor_date: YYYY-MM-DD calendar day
        recurrence_type: RecurrenceType or its string value
        raw_rule: Stored custom rule (only used for custom)

    Returns:
        YYYY-MM-DD string, or None when there is no rule or the anchor is invalid
    """
    rule = resolve_rule(recurrence_type, raw_rule)
    if rule is None:
        return None

    anchor = parse_iso_date(anchor_date)
    if anchor is None:
        return None

    try:
        return format_iso_date(_advance(anchor, rule))
    except (OverflowError, ValueError):
        # past date.max
        return None


def next_occurrence_on_or_after(
    anchor_date: Any,
    recurrence_type: Any,
    raw_rule: Any,
    target_date: Any,
) -> Optional[str]:
    """
    First occurrence on or after target_date, stepping from anchor_date.

    Returns the anchor itself when it is already on or after the target.
    Gives up after MAX_FORWARD_STEPS steps and returns None.
    """
    anchor = parse_iso_date(anchor_date)
    target = parse_iso_date(target_date)
    if anchor is None or target is None:
        return None

    if anchor >= target:
        return format_iso_date(anchor)

    current = format_iso_date(anchor)
    for _ in range(MAX_FORWARD_STEPS):
        current = next_occurrence(current, recurrence_type, raw_rule)
        if current is None:
            return None
        if parse_iso_date(current) >= target:
            return current

    logger.debug(
        f"No occurrence of {recurrence_type} from {anchor_date} reaches {target_date} "
        f"within {MAX_FORWARD_STEPS} steps"
    )
    return None
