"""
Template rendering for presets and free-text fields.

Two constructs are expanded against a single reference calendar day:

    {{date:FORMAT}}            date tokens (YYYY YY MMMM MMM MM M DD D dddd ddd)
    {{if:COND}}BODY{{/if}}     BODY is kept only if every key=value clause holds

Condition keys: day, month, dom, year, date. Clauses are joined with "&".
An unknown key fails the whole condition so the block is hidden rather than
leaking template syntax. Rendering never raises.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union
import re

from dispatch_app.services.timezone import calendar_day_of, parse_iso_date, today_iso_date

SHORT_DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
LONG_DAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")
SHORT_MONTH_NAMES = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")
LONG_MONTH_NAMES = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

# Nested blocks resolve one level per pass
MAX_CONDITIONAL_PASSES = 16

# BODY may not open another block, so each match is an innermost one
CONDITIONAL_PATTERN = re.compile(
    r"\{\{if:([^}]+)\}\}((?:(?!\{\{if:).)*?)\{\{/if\}\}", re.IGNORECASE | re.DOTALL
)
DATE_TOKEN_PATTERN = re.compile(r"\{\{date:([^}]+)\}\}", re.IGNORECASE)
FORMAT_CODE_PATTERN = re.compile(r"YYYY|YY|MMMM|MMM|MM|M|DD|D|dddd|ddd")

ReferenceDate = Union[date, datetime, str, None]


@dataclass(frozen=True)
class DateParts:
    iso: str
    year: int
    month: int
    day_of_month: int
    day_of_week: int  # 0 = Sunday

    @classmethod
    def from_date(cls, value: date) -> "DateParts":
        # date.weekday() is Monday-based
        return cls(
            iso=value.isoformat(),
            year=value.year,
            month=value.month,
            day_of_month=value.day,
            day_of_week=(value.weekday() + 1) % 7,
        )


def resolve_reference_date(reference_date: ReferenceDate = None, time_zone: Optional[str] = None) -> date:
    """
    Calendar day a template is rendered against.

    ISO day strings and date objects are used as-is. Datetimes and other
    datetime strings are instants, converted in the resolved zone. Anything
    else falls back to today, including ISO-shaped strings that name no
    real day such as "2026-02-30".
    """
    if isinstance(reference_date, str):
        trimmed = reference_date.strip()
        parsed = parse_iso_date(trimmed)
        if parsed is not None:
            return parsed
        try:
            instant = datetime.fromisoformat(trimmed.replace("Z", "+00:00"))
        except ValueError:
            instant = None
        if instant is not None:
            return parse_iso_date(calendar_day_of(instant, time_zone))
    elif isinstance(reference_date, datetime):
        return parse_iso_date(calendar_day_of(reference_date, time_zone))
    elif isinstance(reference_date, date):
        return reference_date

    return parse_iso_date(today_iso_date(time_zone))


def _clause_matches(key: str, value: str, parts: DateParts) -> bool:
    if key == "day":
        return value in (
            SHORT_DAY_NAMES[parts.day_of_week],
            LONG_DAY_NAMES[parts.day_of_week],
            str(parts.day_of_week),
        )
    if key == "month":
        return value in (
            SHORT_MONTH_NAMES[parts.month - 1],
            LONG_MONTH_NAMES[parts.month - 1],
            str(parts.month),
            f"{parts.month:02d}",
        )
    if key == "dom":
        return value in (str(parts.day_of_month), f"{parts.day_of_month:02d}")
    if key == "year":
        return value == str(parts.year)
    if key == "date":
        return value == parts.iso.lower()
    return False


def evaluate_condition(condition: str, parts: DateParts) -> bool:
    """True iff every ``key=value`` clause matches the reference day."""
    checks = [part.strip() for part in condition.split("&")]
    checks = [check for check in checks if check]
    if not checks:
        return False

    for check in checks:
        pieces = check.split("=")
        if len(pieces) < 2 or not pieces[0]:
            return False
        key = pieces[0].strip().lower()
        value = pieces[1].strip().lower()
        if not _clause_matches(key, value, parts):
            return False

    return True


def render_conditional_blocks(text: str, parts: DateParts) -> str:
    """Collapse conditional blocks until the text stops changing."""

    def replace(match: re.Match) -> str:
        return match.group(2) if evaluate_condition(match.group(1), parts) else ""

    output = text
    for _ in range(MAX_CONDITIONAL_PASSES):
        rendered = CONDITIONAL_PATTERN.sub(replace, output)
        if rendered == output:
            break
        output = rendered
    return output


def format_date(value: date, fmt: str) -> str:
    """Substitute format codes in fmt; other characters pass through."""
    parts = DateParts.from_date(value)
    codes = {
        "YYYY": str(parts.year),
        "YY": str(parts.year)[-2:],
        "MMMM": LONG_MONTH_NAMES[parts.month - 1],
        "MMM": SHORT_MONTH_NAMES[parts.month - 1],
        "MM": f"{parts.month:02d}",
        "M": str(parts.month),
        "DD": f"{parts.day_of_month:02d}",
        "D": str(parts.day_of_month),
        "dddd": LONG_DAY_NAMES[parts.day_of_week],
        "ddd": SHORT_DAY_NAMES[parts.day_of_week],
    }
    return FORMAT_CODE_PATTERN.sub(lambda m: codes.get(m.group(0), m.group(0)), fmt)


def render_template(
    text: Optional[str],
    reference_date: ReferenceDate = None,
    time_zone: Optional[str] = None,
) -> str:
    """
    Expand conditional blocks, then date tokens.

    Args:
        text: Template source; None or empty renders to ""
        reference_date: Day to render against (defaults to today in time_zone)
        time_zone: User's zone preference

    Returns:
        Rendered string
    """
    if not text:
        return ""

    reference = resolve_reference_date(reference_date, time_zone)
    parts = DateParts.from_date(reference)
    output = render_conditional_blocks(text, parts)

    def replace_token(match: re.Match) -> str:
        fmt = match.group(1).strip()
        return format_date(reference, fmt) if fmt else parts.iso

    return DATE_TOKEN_PATTERN.sub(replace_token, output)
