"""Tests for reporting period inference."""

from datetime import datetime, timedelta, timezone

import pytest

from evotor_ai.exceptions import ConfigurationError
from evotor_ai.utils.period import (
    NOTE_DEFAULT_PERIOD,
    PeriodRange,
    parse_period_from_flags,
    resolve_period,
)

MSK = timezone(timedelta(hours=3))
NOW = datetime(2025, 3, 15, 14, 30, tzinfo=MSK)


def day_range(year: int, month: int, day: int) -> PeriodRange:
    return PeriodRange(
        datetime(year, month, day, tzinfo=MSK),
        datetime(year, month, day, 23, 59, 59, 999999, tzinfo=MSK),
    )


class TestRelativeDays:
    """Tests for relative day keywords."""

    def test_yesterday(self):
        """Test that "вчера" covers the whole previous day."""
        period, note = resolve_period("Сколько продаж было вчера?", now=NOW)
        assert period == day_range(2025, 3, 14)
        assert note == ""

    def test_day_before_yesterday_is_not_yesterday(self):
        """Test that "позавчера" is not mistaken for "вчера"."""
        period, _ = resolve_period("выручка позавчера", now=NOW)
        assert period == day_range(2025, 3, 13)

    def test_today_ends_now(self):
        """Test that "сегодня" runs from midnight to the current time."""
        period, note = resolve_period("продажи сегодня", now=NOW)
        assert period == PeriodRange(datetime(2025, 3, 15, tzinfo=MSK), NOW)
        assert note == ""

    def test_week(self):
        """Test that a week means the last seven days."""
        period, note = resolve_period("чеки за неделю", now=NOW)
        assert period == PeriodRange(NOW - timedelta(days=7), NOW)
        assert note == ""

    def test_english_keywords(self):
        """Test that English relative keywords are understood."""
        period, _ = resolve_period("sales yesterday", now=NOW)
        assert period == day_range(2025, 3, 14)


class TestMonths:
    """Tests for month-name periods."""

    def test_month_with_year(self):
        """Test that an inflected month name with a year gives the whole month."""
        period, note = resolve_period("продажи за март 2024", now=NOW)
        assert period.date_from == datetime(2024, 3, 1, tzinfo=MSK)
        assert period.date_to == datetime(2024, 3, 31, 23, 59, 59, 999999, tzinfo=MSK)
        assert note == ""

    def test_month_without_year_uses_current_year(self):
        """Test that a missing year defaults to the current one with a note."""
        period, note = resolve_period("сколько чеков в феврале", now=NOW)
        assert period.date_from == datetime(2025, 2, 1, tzinfo=MSK)
        assert period.date_to == datetime(2025, 2, 28, 23, 59, 59, 999999, tzinfo=MSK)
        assert note == "Год не указан, использован 2025."

    def test_leap_february(self):
        """Test that February of a leap year has 29 days."""
        period, _ = resolve_period("продажи за февраль 2024", now=NOW)
        assert period.date_to.day == 29

    def test_english_month(self):
        """Test that English month names are understood."""
        period, note = resolve_period("receipts in May 2024", now=NOW)
        assert period.date_from == datetime(2024, 5, 1, tzinfo=MSK)
        assert period.date_to.day == 31
        assert note == ""


class TestDefaultPeriod:
    """Tests for queries without a recognizable period."""

    def test_default_is_last_seven_days_with_note(self):
        """Test that nothing recognized gives the last seven days and a note."""
        period, note = resolve_period("найди кофе", now=NOW)
        assert period == PeriodRange(NOW - timedelta(days=7), NOW)
        assert note == NOTE_DEFAULT_PERIOD


class TestFlags:
    """Tests for explicit --from/--to dates."""

    def test_flags_win_over_query_text(self):
        """Test that explicit dates override the query keywords."""
        period, note = resolve_period("продажи вчера", "2025-01-10", "2025-01-12", now=NOW)
        assert (period.date_from.date().isoformat(), period.date_from.hour) == ("2025-01-10", 0)
        assert period.date_to.date().isoformat() == "2025-01-12"
        assert (period.date_to.hour, period.date_to.minute, period.date_to.second) == (23, 59, 59)
        assert note == ""

    def test_dates_are_timezone_aware(self):
        """Test that flag dates carry the local offset."""
        period = parse_period_from_flags("2025-01-10", "2025-01-12", now=NOW)
        assert period.date_from.tzinfo is not None
        assert period.date_to.tzinfo is not None

    def test_same_day_is_valid(self):
        """Test that --from and --to on the same day cover that day."""
        period = parse_period_from_flags("2025-01-10", "2025-01-10", now=NOW)
        assert period.date_from < period.date_to

    def test_only_from(self):
        """Test that a missing --to defaults to now."""
        period = parse_period_from_flags("2025-03-01", "", now=NOW)
        assert period.date_from.date().isoformat() == "2025-03-01"
        assert period.date_to == NOW

    def test_only_to(self):
        """Test that a missing --from defaults to seven days ago."""
        period = parse_period_from_flags("", "2025-03-20", now=NOW)
        assert period.date_from == NOW - timedelta(days=7)

    def test_reversed_dates(self):
        """Test that --to before --from is a configuration error."""
        with pytest.raises(ConfigurationError, match="--to must be after --from"):
            parse_period_from_flags("2025-01-31", "2025-01-01", now=NOW)

    @pytest.mark.parametrize(("date_from", "date_to", "flag"), [("31.01.2025", "", "--from"), ("", "2025-13-01", "--to")])
    def test_invalid_dates(self, date_from, date_to, flag):
        """Test that malformed dates name the offending flag."""
        with pytest.raises(ConfigurationError, match=f"invalid {flag} date"):
            parse_period_from_flags(date_from, date_to, now=NOW)
