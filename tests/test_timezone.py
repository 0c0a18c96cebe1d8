from datetime import date, datetime

import pytest
import pytz
from freezegun import freeze_time

from dispatch_app import config
from dispatch_app.services import timezone
from dispatch_app.services.timezone import (
    add_days_to_iso_date,
    calendar_day_of,
    is_valid_time_zone,
    parse_iso_date,
    resolve_effective_time_zone,
    today_iso_date,
)


@pytest.mark.parametrize("name", ["UTC", "America/New_York", "Asia/Tokyo", "Europe/Berlin"])
def test_known_zones_are_valid(name):
    assert is_valid_time_zone(name)


@pytest.mark.parametrize("name", ["", "Mars/Olympus", None, 42, "utc/nowhere"])
def test_unknown_zones_are_invalid(name):
    assert not is_valid_time_zone(name)


def test_preference_wins_when_valid():
    assert resolve_effective_time_zone("  Asia/Tokyo ") == "Asia/Tokyo"


def test_invalid_preference_falls_back_to_runtime_zone(monkeypatch):
    monkeypatch.setattr(config, "DEFAULT_TIME_ZONE", "Europe/Berlin")
    assert resolve_effective_time_zone("Not/AZone") == "Europe/Berlin"
    assert resolve_effective_time_zone(None) == "Europe/Berlin"


def test_runtime_zone_falls_back_to_utc_when_detection_fails(monkeypatch):
    monkeypatch.setattr(config, "DEFAULT_TIME_ZONE", None)

    def broken():
        raise LookupError("no zone")

    monkeypatch.setattr(timezone, "get_localzone_name", broken)
    assert resolve_effective_time_zone("bogus") == "UTC"


def test_runtime_zone_ignores_unrecognized_detection(monkeypatch):
    monkeypatch.setattr(config, "DEFAULT_TIME_ZONE", None)
    monkeypatch.setattr(timezone, "get_localzone_name", lambda: "Local/Weird")
    assert timezone.get_runtime_time_zone() == "UTC"


def test_calendar_day_depends_on_zone():
    instant = pytz.utc.localize(datetime(2026, 2, 21, 23, 30))
    assert calendar_day_of(instant, "UTC") == "2026-02-21"
    assert calendar_day_of(instant, "Asia/Tokyo") == "2026-02-22"
    assert calendar_day_of(instant, "America/Los_Angeles") == "2026-02-21"


def test_naive_instant_is_treated_as_utc():
    assert calendar_day_of(datetime(2026, 2, 21, 20, 0), "Asia/Tokyo") == "2026-02-22"


def test_today_uses_effective_zone():
    with freeze_time("2026-02-21 20:00:00"):
        assert today_iso_date("UTC") == "2026-02-21"
        assert today_iso_date("Asia/Tokyo") == "2026-02-22"
        assert today_iso_date("America/New_York") == "2026-02-21"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2026-02-21", date(2026, 2, 21)),
        (" 2024-02-29 ", date(2024, 2, 29)),
        ("2025-02-29", None),
        ("2026-2-21", None),
        ("2026-02-21T10:00:00", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_iso_date_is_strict(value, expected):
    assert parse_iso_date(value) == expected


def test_add_days_crosses_month_and_year():
    assert add_days_to_iso_date("2026-02-28", 1) == "2026-03-01"
    assert add_days_to_iso_date("2026-12-31", 1) == "2027-01-01"
    assert add_days_to_iso_date("2026-03-01", -1) == "2026-02-28"


def test_add_days_returns_malformed_input_unchanged():
    assert add_days_to_iso_date("not-a-date", 1) == "not-a-date"
    assert add_days_to_iso_date("9999-12-31", 1) == "9999-12-31"
