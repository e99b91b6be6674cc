# datefunnel/services/availability_service.py
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from datefunnel.models.availability import AvailabilityEntry, AvailabilityKind
from datefunnel.models.trip import Trip
from datefunnel.scheduling import guards
from datefunnel.scheduling.dates import candidate_days
from datefunnel.scheduling.errors import SchedulingError
from datefunnel.scheduling.normalizer import (
    NormalizedAvailability,
    normalize_availability,
    validate_submission,
)
from datefunnel.scheduling.types import (
    AvailabilityStatus,
    AvailabilitySubmission,
    DayAvailability,
    WeeklyBlock,
)
from datefunnel.services.trip_service import (
    build_snapshot,
    ensure_traveler,
    mark_scheduling_started,
)

logger = logging.getLogger(__name__)


def record_availability_for_user(
    db: Session,
    *,
    trip: Trip,
    user_id: str,
    broad_status: Optional[AvailabilityStatus] = None,
    weekly_blocks: Iterable[WeeklyBlock] = (),
    days: Iterable[DayAvailability] = (),
) -> AvailabilitySubmission:
    """
    Record a traveler's availability for a trip.

    Behavior:
    - Validates the whole submission first; nothing is written on error.
    - Removes every existing entry for that (trip, user) so the new
      submission replaces, never merges with, the old one.
    - Inserts one row per broad / weekly / per-day item.
    - Moves the trip from `proposed` to `scheduling` on first input.

    Returns the submission as recorded.
    """
    submission = AvailabilitySubmission(
        user_id=user_id,
        broad_status=AvailabilityStatus(broad_status) if broad_status else None,
        weekly_blocks=tuple(weekly_blocks),
        days=tuple(days),
    )

    snapshot = build_snapshot(db, trip)
    try:
        guards.ensure_action_allowed(snapshot, guards.SUBMIT_AVAILABILITY, user_id)
        ensure_traveler(db, trip, user_id)
        validate_submission(submission, trip.start_date, trip.end_date)
    except SchedulingError as e:
        logger.warning(f"Availability rejected for trip {trip.id} user {user_id}: {e.code} {e}")
        raise

    db.query(AvailabilityEntry).filter(
        AvailabilityEntry.trip_id == trip.id,
        AvailabilityEntry.user_id == user_id,
    ).delete()

    rows: List[AvailabilityEntry] = []
    if submission.broad_status is not None:
        rows.append(
            AvailabilityEntry(
                kind=AvailabilityKind.BROAD,
                status=submission.broad_status.value,
            )
        )
    for position, block in enumerate(submission.weekly_blocks):
        rows.append(
            AvailabilityEntry(
                kind=AvailabilityKind.WEEKLY,
                status=AvailabilityStatus(block.status).value,
                start_date=block.start_date,
                end_date=block.end_date,
                position=position,
            )
        )
    for position, entry in enumerate(submission.days):
        rows.append(
            AvailabilityEntry(
                kind=AvailabilityKind.DAY,
                status=AvailabilityStatus(entry.status).value,
                day=entry.day,
                position=position,
            )
        )

    for row in rows:
        row.trip_id = trip.id
        row.user_id = user_id
        db.add(row)

    mark_scheduling_started(trip)
    db.commit()

    logger.info(
        f"Availability replaced for trip {trip.id} user {user_id}: "
        f"broad={submission.broad_status is not None} weekly={len(submission.weekly_blocks)} "
        f"days={len(submission.days)}"
    )
    return submission


def load_submissions(db: Session, trip_id: int) -> List[AvailabilitySubmission]:
    """Rebuild each user's live submission from stored entries."""
    entries = (
        db.query(AvailabilityEntry)
        .filter(AvailabilityEntry.trip_id == trip_id)
        .order_by(
            AvailabilityEntry.user_id.asc(),
            AvailabilityEntry.position.asc(),
            AvailabilityEntry.id.asc(),
        )
        .all()
    )

    by_user: Dict[str, List[AvailabilityEntry]] = {}
    for entry in entries:
        by_user.setdefault(entry.user_id, []).append(entry)

    submissions: List[AvailabilitySubmission] = []
    for user_id, user_entries in by_user.items():
        broad = next((e for e in user_entries if e.kind == AvailabilityKind.BROAD), None)
        submissions.append(
            AvailabilitySubmission(
                user_id=user_id,
                broad_status=AvailabilityStatus(broad.status) if broad else None,
                weekly_blocks=tuple(
                    WeeklyBlock(e.start_date, e.end_date, AvailabilityStatus(e.status))
                    for e in user_entries
                    if e.kind == AvailabilityKind.WEEKLY
                ),
                days=tuple(
                    DayAvailability(e.day, AvailabilityStatus(e.status))
                    for e in user_entries
                    if e.kind == AvailabilityKind.DAY
                ),
            )
        )
    return submissions


def get_normalized_availability(
    db: Session,
    trip: Trip,
    user_id: str,
) -> Optional[NormalizedAvailability]:
    """Per-day status for one user, or None if they never submitted."""
    for submission in load_submissions(db, trip.id):
        if submission.user_id == user_id:
            return normalize_availability(
                submission, candidate_days(trip.start_date, trip.end_date)
            )
    return None
