# datefunnel/scheduling/dates.py
from datetime import date, timedelta
from typing import Iterator, List, Union

from datefunnel.scheduling.errors import SchedulingValidationError

DateLike = Union[date, str]


def parse_day(value: DateLike) -> date:
    """Accept a `date` or a 'YYYY-MM-DD' string."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise SchedulingValidationError(
            f"Invalid date {value!r}, expected YYYY-MM-DD"
        ) from e


def iter_days(start: date, end: date) -> Iterator[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def candidate_days(start: DateLike, end: DateLike) -> List[date]:
    """
    Every day of an inclusive [start, end] range.

    Raises SchedulingValidationError when start > end.
    """
    start_day = parse_day(start)
    end_day = parse_day(end)
    if start_day > end_day:
        raise SchedulingValidationError(
            f"startDate ({start_day.isoformat()}) must be <= endDate ({end_day.isoformat()})"
        )
    return list(iter_days(start_day, end_day))


def span_days(start: date, end: date) -> int:
    """Inclusive number of days in [start, end]."""
    return (end - start).days + 1


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    return start_a <= end_b and start_b <= end_a
