"""Reporting period inference from the query text or the --from/--to flags."""

import calendar
import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from evotor_ai.exceptions import ConfigurationError

DEFAULT_PERIOD_DAYS = 7

NOTE_DEFAULT_PERIOD = "Период не указан, использованы последние 7 дней."
NOTE_DEFAULT_YEAR = "Год не указан, использован {year}."

# Russian stems match inflected forms ("марта", "в мае")
MONTH_STEMS: dict[str, int] = {
    "январ": 1,
    "феврал": 2,
    "март": 3,
    "апрел": 4,
    "мая": 5,
    "май": 5,
    "июн": 6,
    "июл": 7,
    "август": 8,
    "сентябр": 9,
    "октябр": 10,
    "ноябр": 11,
    "декабр": 12,
}
ENGLISH_MONTH = re.compile(
    r"\b(january|february|march|april|may|june|july|august|september|october|november|december)\b"
)
YEAR = re.compile(r"\b(20\d{2})\b")
DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class PeriodRange:
    """Closed time interval in local time."""

    date_from: datetime
    date_to: datetime


def local_now() -> datetime:
    return datetime.now().astimezone()


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999999)


def whole_day(value: datetime) -> PeriodRange:
    return PeriodRange(start_of_day(value), end_of_day(value))


def last_days(now: datetime, days: int = DEFAULT_PERIOD_DAYS) -> PeriodRange:
    return PeriodRange(now - timedelta(days=days), now)


def whole_month(year: int, month: int, now: datetime) -> PeriodRange:
    first = now.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)
    last_day = calendar.monthrange(year, month)[1]
    return PeriodRange(first, end_of_day(first.replace(day=last_day)))


def detect_month(lower: str) -> int | None:
    for stem, month in MONTH_STEMS.items():
        if stem in lower:
            return month
    if match := ENGLISH_MONTH.search(lower):
        return list(calendar.month_name).index(match.group(1).capitalize())
    return None


def detect_year(lower: str) -> int | None:
    if match := YEAR.search(lower):
        return int(match.group(1))
    return None


def parse_date(value: str) -> datetime:
    """Parse ``YYYY-MM-DD`` as a local calendar date."""
    return datetime.strptime(value.strip(), DATE_FORMAT).astimezone()


def parse_period_from_flags(date_from: str, date_to: str, now: datetime | None = None) -> PeriodRange:
    """Expand --from/--to dates to local day start and day end.

    A missing side defaults to seven days ago or now.

    Raises:
        ConfigurationError: If a date is malformed or --to precedes --from
    """
    now = now or local_now()

    start = now - timedelta(days=DEFAULT_PERIOD_DAYS)
    if date_from.strip():
        try:
            start = start_of_day(parse_date(date_from))
        except ValueError as e:
            raise ConfigurationError(f"invalid --from date: {e}") from e

    end = now
    if date_to.strip():
        try:
            end = end_of_day(parse_date(date_to))
        except ValueError as e:
            raise ConfigurationError(f"invalid --to date: {e}") from e

    if end < start:
        raise ConfigurationError("--to must be after --from")
    return PeriodRange(start, end)


def resolve_period(
    query: str,
    date_from: str = "",
    date_to: str = "",
    now: datetime | None = None,
) -> tuple[PeriodRange, str]:
    """Resolve the reporting period of a query.

    Explicit flags win. Otherwise relative days, a week, then a month name are looked
    up in the lower-cased query; with nothing recognized the last seven days are used.

    Returns:
        The period and a note for the user (empty when nothing was assumed)
    """
    now = now or local_now()
    if date_from.strip() or date_to.strip():
        return parse_period_from_flags(date_from, date_to, now), ""

    lower = query.lower()
    # "позавчера" contains "вчера", so it is checked first
    if "позавчера" in lower or "day before yesterday" in lower:
        return whole_day(now - timedelta(days=2)), ""
    if "вчера" in lower or "yesterday" in lower:
        return whole_day(now - timedelta(days=1)), ""
    if "сегодня" in lower or "today" in lower:
        return PeriodRange(start_of_day(now), now), ""
    if "недел" in lower or "week" in lower:
        return last_days(now), ""

    if month := detect_month(lower):
        year = detect_year(lower)
        if year is None:
            return whole_month(now.year, month, now), NOTE_DEFAULT_YEAR.format(year=now.year)
        return whole_month(year, month, now), ""

    return last_days(now), NOTE_DEFAULT_PERIOD
