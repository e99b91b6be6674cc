# datefunnel/scheduling/window_text.py
from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from datefunnel.scheduling.dates import span_days
from datefunnel.scheduling.errors import SchedulingValidationError

MAX_WINDOW_DAYS = 14

_MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

_MULTI_RANGE = [
    re.compile(r"\bor\b", re.I),
    re.compile(r"\beither\b", re.I),
    re.compile(r"\banytime\b", re.I),
    re.compile(r"\bflexible\b", re.I),
    re.compile(r"\bwhenever\b", re.I),
    re.compile(r",\s*(and|&|also)", re.I),
    re.compile(r"\d+\s*[-–]\s*\d+\s*(or|,)\s*\d+", re.I),
]

_SEP = r"(?:–|-|to|through)"
_YEAR = r"(?:\s*,?\s*(\d{4}))?"

_ISO_RANGE = re.compile(rf"^(\d{{4}}-\d{{2}}-\d{{2}})\s*{_SEP}\s*(\d{{4}}-\d{{2}}-\d{{2}})$", re.I)
_SAME_MONTH = re.compile(rf"^([a-z]+)\s+(\d{{1,2}})\s*{_SEP}\s*(\d{{1,2}}){_YEAR}$", re.I)
_CROSS_MONTH = re.compile(rf"^([a-z]+)\s+(\d{{1,2}})\s*{_SEP}\s*([a-z]+)\s+(\d{{1,2}}){_YEAR}$", re.I)
_SINGLE_DAY = re.compile(rf"^([a-z]+)\s+(\d{{1,2}}){_YEAR}$", re.I)
_RELATIVE = re.compile(rf"^(early|mid|late)\s+([a-z]+){_YEAR}$", re.I)
_LAST_WEEK = re.compile(rf"^(?:the\s+)?last\s+week\s+(?:of\s+)?([a-z]+){_YEAR}$", re.I)
_WEEKEND = re.compile(
    rf"^(?:the\s+)?(first|1st|second|2nd|last)\s+weekend\s+(?:of\s+)?([a-z]+){_YEAR}$", re.I
)
_BARE_MONTH = re.compile(rf"^([a-z]+){_YEAR}$", re.I)

EXAMPLES = '"Feb 7-9", "early March", "last week of June", "first weekend of April", "April"'


@dataclass(frozen=True)
class ParsedWindow:
    start_date: date
    end_date: date
    precision: str  # "exact" | "approx"
    bare_month: bool = False


def _month(text: str) -> Optional[int]:
    return _MONTHS.get(text.lower().strip())


def _target_year(month: int, start_bound: Optional[date], today: date) -> int:
    if start_bound is not None:
        return start_bound.year
    if month < today.month:
        return today.year + 1
    return today.year


def _day(year: int, month: int, day: int) -> Optional[date]:
    if day < 1 or day > calendar.monthrange(year, month)[1]:
        return None
    return date(year, month, day)


def _explicit(text: str, start_bound, today) -> Optional[ParsedWindow]:
    m = _ISO_RANGE.match(text)
    if m:
        try:
            start, end = date.fromisoformat(m.group(1)), date.fromisoformat(m.group(2))
        except ValueError:
            return None
        return ParsedWindow(start, end, "exact")

    m = _SAME_MONTH.match(text)
    if m:
        month = _month(m.group(1))
        if month is None:
            return None
        year = int(m.group(4)) if m.group(4) else _target_year(month, start_bound, today)
        start, end = _day(year, month, int(m.group(2))), _day(year, month, int(m.group(3)))
        if start is None or end is None or start > end:
            return None
        return ParsedWindow(start, end, "exact")

    m = _CROSS_MONTH.match(text)
    if m:
        month1, month2 = _month(m.group(1)), _month(m.group(3))
        if month1 is None or month2 is None:
            return None
        year1 = int(m.group(5)) if m.group(5) else _target_year(month1, start_bound, today)
        # Dec -> Jan rolls into the next year
        year2 = year1 + 1 if month2 < month1 else year1
        start, end = _day(year1, month1, int(m.group(2))), _day(year2, month2, int(m.group(4)))
        if start is None or end is None:
            return None
        return ParsedWindow(start, end, "exact")

    m = _SINGLE_DAY.match(text)
    if m:
        month = _month(m.group(1))
        if month is None:
            return None
        year = int(m.group(3)) if m.group(3) else _target_year(month, start_bound, today)
        day = _day(year, month, int(m.group(2)))
        if day is None:
            return None
        return ParsedWindow(day, day, "exact")

    return None


def _relative_month(text: str, start_bound, today) -> Optional[ParsedWindow]:
    m = _RELATIVE.match(text)
    if not m:
        return None
    month = _month(m.group(2))
    if month is None:
        return None
    year = int(m.group(3)) if m.group(3) else _target_year(month, start_bound, today)
    last = calendar.monthrange(year, month)[1]
    first_day, last_day = {"early": (1, 7), "mid": (10, 20), "late": (21, last)}[m.group(1).lower()]
    return ParsedWindow(date(year, month, first_day), date(year, month, last_day), "approx")


def _last_week(text: str, start_bound, today) -> Optional[ParsedWindow]:
    m = _LAST_WEEK.match(text)
    if not m:
        return None
    month = _month(m.group(1))
    if month is None:
        return None
    year = int(m.group(2)) if m.group(2) else _target_year(month, start_bound, today)
    last = calendar.monthrange(year, month)[1]
    return ParsedWindow(date(year, month, last - 6), date(year, month, last), "approx")


def _weekend(text: str, start_bound, today) -> Optional[ParsedWindow]:
    m = _WEEKEND.match(text)
    if not m:
        return None
    month = _month(m.group(2))
    if month is None:
        return None
    year = int(m.group(3)) if m.group(3) else _target_year(month, start_bound, today)
    last = calendar.monthrange(year, month)[1]
    ordinal = m.group(1).lower()

    if ordinal == "last":
        last_date = date(year, month, last)
        # weekday(): Mon=0 .. Sat=5, Sun=6
        saturday = last_date - timedelta(days=(last_date.weekday() - 5) % 7)
    else:
        first = date(year, month, 1)
        saturday = first + timedelta(days=(5 - first.weekday()) % 7)
        if ordinal in ("second", "2nd"):
            saturday += timedelta(days=7)
            if saturday.month != month:
                return None

    return ParsedWindow(saturday, saturday + timedelta(days=1), "approx")


def _bare_month(text: str, start_bound, today) -> Optional[ParsedWindow]:
    m = _BARE_MONTH.match(text)
    if not m:
        return None
    month = _month(m.group(1))
    if month is None:
        return None
    year = int(m.group(2)) if m.group(2) else _target_year(month, start_bound, today)
    last = calendar.monthrange(year, month)[1]
    return ParsedWindow(date(year, month, 1), date(year, month, last), "approx", bare_month=True)


_PARSERS = (_explicit, _relative_month, _last_week, _weekend, _bare_month)


def parse_window_text(
    text: str,
    *,
    start_bound: Optional[date] = None,
    today: Optional[date] = None,
    max_window_days: int = MAX_WINDOW_DAYS,
) -> ParsedWindow:
    """
    Turn a free-form date suggestion into a concrete range. Deterministic,
    no LLM involved.

    Year inference: explicit year, else the trip's start bound, else this
    year (next year when the month has already passed).
    """
    if not text or not text.strip():
        raise SchedulingValidationError(f"Please enter a date range. Examples: {EXAMPLES}")

    trimmed = text.strip()
    if any(p.search(trimmed) for p in _MULTI_RANGE):
        raise SchedulingValidationError(
            "Please suggest one date range at a time. You can add another option separately.",
            code="MULTI_RANGE",
        )

    today = today or date.today()
    result = None
    for parser in _PARSERS:
        result = parser(trimmed, start_bound, today)
        if result is not None:
            break

    if result is None:
        raise SchedulingValidationError(
            f"Could not understand the date format. Try: {EXAMPLES}",
            code="UNPARSEABLE_WINDOW",
        )

    if result.start_date > result.end_date:
        raise SchedulingValidationError("End date must be on or after start date.")

    length = span_days(result.start_date, result.end_date)
    if not result.bare_month and length > max_window_days:
        raise SchedulingValidationError(
            f"That's {length} days, which is longer than the {max_window_days}-day limit. "
            "Try a shorter range.",
            code="WINDOW_TOO_LONG",
        )

    return result
