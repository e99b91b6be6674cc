# datefunnel/scheduling/normalizer.py
from datetime import date
from typing import Dict, Iterable, Optional, Sequence

from datefunnel.scheduling.dates import iter_days
from datefunnel.scheduling.errors import SchedulingValidationError
from datefunnel.scheduling.types import AvailabilityStatus, AvailabilitySubmission

NormalizedAvailability = Dict[date, Optional[AvailabilityStatus]]


def validate_submission(
    submission: AvailabilitySubmission,
    range_start: date,
    range_end: date,
) -> None:
    """
    Reject a submission that cannot be applied to the trip's candidate range.

    - none of broad / weekly / per-day populated
    - a weekly block with startDate > endDate
    - a weekly block or a per-day entry outside [range_start, range_end]
    """
    if submission.is_empty():
        raise SchedulingValidationError(
            "Must provide availabilities, broadStatus, or weeklyBlocks",
            code="EMPTY_SUBMISSION",
        )

    for block in submission.weekly_blocks:
        if block.start_date > block.end_date:
            raise SchedulingValidationError(
                f"Weekly block startDate ({block.start_date.isoformat()}) "
                f"must be <= endDate ({block.end_date.isoformat()})"
            )
        if block.start_date < range_start or block.end_date > range_end:
            raise SchedulingValidationError(
                f"Weekly block dates ({block.start_date.isoformat()} to "
                f"{block.end_date.isoformat()}) must be within trip range "
                f"({range_start.isoformat()} to {range_end.isoformat()})",
                code="OUT_OF_RANGE",
            )

    for entry in submission.days:
        if entry.day < range_start or entry.day > range_end:
            raise SchedulingValidationError(
                f"Day {entry.day.isoformat()} is outside trip date range "
                f"({range_start.isoformat()} to {range_end.isoformat()})",
                code="OUT_OF_RANGE",
            )


def normalize_availability(
    submission: AvailabilitySubmission,
    trip_days: Sequence[date],
) -> NormalizedAvailability:
    """
    Collapse one user's submission into a status for every trip day.

    Precedence: per-day > weekly block > broad. Weekly blocks are applied in
    submission order, so the later block wins where two overlap. Days with no
    data map to None.
    """
    if not trip_days:
        raise SchedulingValidationError("Trip has no candidate days")

    range_start, range_end = trip_days[0], trip_days[-1]
    validate_submission(submission, range_start, range_end)

    day_map: NormalizedAvailability = {day: submission.broad_status for day in trip_days}

    for block in submission.weekly_blocks:
        for day in iter_days(block.start_date, block.end_date):
            if day in day_map:
                day_map[day] = block.status

    for entry in submission.days:
        day_map[entry.day] = entry.status

    return day_map


def normalize_all(
    submissions: Iterable[AvailabilitySubmission],
    trip_days: Sequence[date],
) -> Dict[str, NormalizedAvailability]:
    """
    Normalize every user's submission, keyed by user id.

    If a user appears more than once the last submission wins (replace,
    never merge).
    """
    latest: Dict[str, AvailabilitySubmission] = {}
    for submission in submissions:
        latest[submission.user_id] = submission

    return {
        user_id: normalize_availability(submission, trip_days)
        for user_id, submission in latest.items()
    }

