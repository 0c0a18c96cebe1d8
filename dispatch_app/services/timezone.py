"""Timezone resolution and calendar-day helpers.

Everything downstream of this module works on ``YYYY-MM-DD`` strings. An
instant is converted to a calendar day exactly once, here, in the user's
effective zone.
"""
from datetime import date, datetime, timedelta
from typing import Optional
import logging
import re

import pytz
from tzlocal import get_localzone_name

from dispatch_app import config

logger = logging.getLogger(__name__)

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_valid_time_zone(name) -> bool:
    """Return True if the name is known to the timezone database."""
    if not isinstance(name, str) or not name:
        return False
    try:
        pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        return False
    return True


def get_runtime_time_zone() -> str:
    """Zone of the host process, or UTC when it cannot be detected."""
    if config.DEFAULT_TIME_ZONE and is_valid_time_zone(config.DEFAULT_TIME_ZONE):
        return config.DEFAULT_TIME_ZONE

    try:
        detected = get_localzone_name()
    except (LookupError, ValueError, OSError) as e:
        logger.debug(f"Could not detect local time zone: {e}")
        detected = None

    if detected and is_valid_time_zone(detected):
        return detected
    return "UTC"


def resolve_effective_time_zone(preference: Optional[str] = None) -> str:
    """
    Resolve the zone used for "today" computations.

    Args:
        preference: Optional IANA name stored on the user

    Returns:
        The trimmed preference if valid, else the runtime zone, else "UTC"
    """
    if isinstance(preference, str):
        trimmed = preference.strip()
        if trimmed and is_valid_time_zone(trimmed):
            return trimmed
    return get_runtime_time_zone()


def calendar_day_of(instant: datetime, time_zone: Optional[str] = None) -> str:
    """Wall-clock calendar date of an instant in the resolved zone.

    Naive datetimes are interpreted as UTC.
    """
    zone = pytz.timezone(resolve_effective_time_zone(time_zone))
    if instant.tzinfo is None:
        instant = pytz.utc.localize(instant)
    return instant.astimezone(zone).date().isoformat()


def today_iso_date(time_zone: Optional[str] = None) -> str:
    """Today's calendar date in the resolved zone."""
    return calendar_day_of(datetime.now(pytz.utc), time_zone)


def parse_iso_date(value) -> Optional[date]:
    """Parse a strict YYYY-MM-DD string into a date, or None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not ISO_DATE_PATTERN.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def format_iso_date(value: date) -> str:
    return value.isoformat()


def add_days_to_iso_date(value: str, days: int) -> str:
    """Shift a calendar-day string by a number of days.

    Malformed input is returned unchanged.
    """
    parsed = parse_iso_date(value)
    if parsed is None:
        return value
    try:
        return format_iso_date(parsed + timedelta(days=days))
    except OverflowError:
        return value
