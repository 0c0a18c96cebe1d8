import json

import pytest

from dispatch_app.models.recurrence_rule import RecurrenceBehavior, RecurrenceRule, RecurrenceType, RecurrenceUnit
from dispatch_app.services import recurrence
from dispatch_app.services.recurrence import (
    add_months_clamped,
    describe_recurrence,
    is_valid_recurrence_behavior,
    is_valid_recurrence_type,
    next_occurrence,
    next_occurrence_on_or_after,
    normalize_recurrence_behavior,
    parse_custom_rule,
    resolve_rule,
    serialize_custom_rule,
)


class TestRuleModel:
    @pytest.mark.parametrize("interval", [1, 2, 30, 365])
    @pytest.mark.parametrize("unit", list(RecurrenceUnit))
    def test_serialized_rule_parses_back(self, interval, unit):
        rule = RecurrenceRule(interval=interval, unit=unit)
        assert parse_custom_rule(serialize_custom_rule(rule)) == rule

    def test_accepts_mapping_and_rule_instances(self):
        expected = RecurrenceRule(3, RecurrenceUnit.WEEK)
        assert parse_custom_rule({"interval": 3, "unit": "week"}) == expected
        assert parse_custom_rule(expected) == expected
        assert parse_custom_rule({"interval": 3.0, "unit": RecurrenceUnit.WEEK}) == expected

    @pytest.mark.parametrize(
        "raw",
        [
            None,
            "",
            "not json",
            json.dumps("{\"interval\": 1, \"unit\": \"day\"}"),
            {"interval": 0, "unit": "day"},
            {"interval": 366, "unit": "day"},
            {"interval": True, "unit": "day"},
            {"interval": 1.5, "unit": "day"},
            {"interval": "2", "unit": "day"},
            {"interval": 2, "unit": "year"},
            {"interval": 2},
            [1, "day"],
        ],
    )
    def test_malformed_rules_parse_to_none(self, raw):
        assert parse_custom_rule(raw) is None

    def test_membership_accepts_enum_members_and_values(self):
        assert is_valid_recurrence_type("monthly")
        assert is_valid_recurrence_type(RecurrenceType.CUSTOM)
        assert not is_valid_recurrence_type("yearly")
        assert is_valid_recurrence_behavior(RecurrenceBehavior.DUPLICATE_ON_SCHEDULE)
        assert not is_valid_recurrence_behavior("sometimes")

    def test_none_type_ignores_stored_rule(self):
        stored = serialize_custom_rule(RecurrenceRule(2, RecurrenceUnit.DAY))
        assert resolve_rule("none", stored) is None
        assert next_occurrence("2024-01-01", "none", stored) is None

    def test_builtin_types_ignore_stored_rule(self):
        stored = {"interval": 5, "unit": "month"}
        assert resolve_rule("daily", stored) == RecurrenceRule(1, RecurrenceUnit.DAY)
        assert resolve_rule(RecurrenceType.WEEKLY) == RecurrenceRule(1, RecurrenceUnit.WEEK)

    def test_unknown_type_resolves_to_none(self):
        assert resolve_rule("fortnightly", None) is None

    @pytest.mark.parametrize(
        "kind, rule, expected",
        [
            ("none", None, "No recurrence"),
            ("daily", None, "Every day"),
            ("weekly", None, "Every week"),
            ("monthly", None, "Every month"),
            ("custom", {"interval": 3, "unit": "week"}, "Every 3 weeks"),
            ("custom", {"interval": 1, "unit": "month"}, "Every month"),
            ("custom", "garbage", "Custom recurrence"),
        ],
    )
    def test_describe(self, kind, rule, expected):
        assert describe_recurrence(kind, rule) == expected

    def test_behavior_normalization(self):
        assert normalize_recurrence_behavior("none", "duplicate_on_schedule") == RecurrenceBehavior.AFTER_COMPLETION
        assert normalize_recurrence_behavior("daily", "duplicate_on_schedule") == RecurrenceBehavior.DUPLICATE_ON_SCHEDULE
        assert normalize_recurrence_behavior("daily", "legacy") == RecurrenceBehavior.AFTER_COMPLETION


class TestNextOccurrence:
    def test_monthly_clamps_to_leap_day(self):
        assert next_occurrence("2024-01-31", "monthly", None) == "2024-02-29"

    def test_monthly_clamps_in_common_year(self):
        assert next_occurrence("2023-01-31", "monthly", None) == "2023-02-28"

    def test_custom_every_two_weeks(self):
        assert next_occurrence("2024-03-15", "custom", {"interval": 2, "unit": "week"}) == "2024-03-29"

    def test_daily_and_weekly(self):
        assert next_occurrence("2024-12-31", "daily") == "2025-01-01"
        assert next_occurrence("2024-12-28", "weekly") == "2025-01-04"

    def test_custom_months_cross_year(self):
        assert next_occurrence("2024-11-30", "custom", '{"interval": 3, "unit": "month"}') == "2025-02-28"

    def test_invalid_anchor_or_rule_yields_none(self):
        assert next_occurrence("2024-02-30", "daily") is None
        assert next_occurrence(None, "daily") is None
        assert next_occurrence("2024-01-01", "custom", None) is None

    def test_past_max_date_yields_none(self):
        assert next_occurrence("9999-12-31", "daily") is None

    def test_add_months_clamped(self):
        from datetime import date
        assert add_months_clamped(date(2024, 3, 31), -1) == date(2024, 2, 29)
        assert add_months_clamped(date(2024, 1, 15), 12) == date(2025, 1, 15)


class TestNextOccurrenceOnOrAfter:
    @pytest.mark.parametrize("target", ["2024-05-10", "2024-01-01"])
    def test_anchor_on_or_after_target_is_returned(self, target):
        assert next_occurrence_on_or_after("2024-05-10", "weekly", None, target) == "2024-05-10"

    def test_steps_forward_to_target(self):
        assert next_occurrence_on_or_after("2024-01-01", "weekly", None, "2024-01-20") == "2024-01-22"

    def test_month_clamping_compounds(self):
        assert next_occurrence_on_or_after("2023-01-31", "monthly", None, "2023-03-15") == "2023-03-28"

    def test_invalid_target_yields_none(self):
        assert next_occurrence_on_or_after("2024-01-01", "daily", None, "soon") is None

    def test_search_is_capped(self, monkeypatch):
        monkeypatch.setattr(recurrence, "MAX_FORWARD_STEPS", 10)
        assert next_occurrence_on_or_after("2024-01-01", "daily", None, "2024-01-11") == "2024-01-11"
        assert next_occurrence_on_or_after("2024-01-01", "daily", None, "2024-01-12") is None

    def test_default_cap_reaches_a_decade_of_days(self):
        assert next_occurrence_on_or_after("2015-01-01", "daily", None, "2025-01-01") == "2025-01-01"

    def test_no_rule_yields_none(self):
        assert next_occurrence_on_or_after("2024-01-01", "none", None, "2024-02-01") is None
