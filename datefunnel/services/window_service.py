# datefunnel/services/window_service.py
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from datefunnel.config import get_settings
from datefunnel.models.date_window import DateWindow, DateWindowPreference
from datefunnel.models.trip import Trip
from datefunnel.scheduling.errors import SchedulingError
from datefunnel.scheduling.readiness import ProposalReadiness, evaluate_proposal_readiness
from datefunnel.scheduling.types import WindowPreferenceType
from datefunnel.scheduling.window_ledger import (
    ScoredWindowProposal,
    WindowSubmission,
    add_window_proposal,
    archive_window_proposals,
    rank_window_proposals,
    record_preference,
)
from datefunnel.services.trip_service import (
    active_traveler_ids,
    build_snapshot,
    ensure_traveler,
    get_trip,
    mark_scheduling_started,
)

logger = logging.getLogger(__name__)


@dataclass
class CreatedWindow:
    window: DateWindow
    submission: WindowSubmission


@dataclass
class WindowBoard:
    ranked: List[ScoredWindowProposal]
    readiness: ProposalReadiness


def submit_window(
    db: Session,
    *,
    trip_id: int,
    user_id: str,
    description: str,
    start_hint: Optional[date] = None,
    end_hint: Optional[date] = None,
    now: Optional[datetime] = None,
) -> Optional[CreatedWindow]:
    """
    Add a window proposal for a traveler.

    The trip row is read with a row lock so the freeze check (no date
    proposal yet) happens before any concurrent proposal becomes visible.
    Returns None when the trip does not exist.
    """
    trip = get_trip(db, trip_id, for_update=True)
    if trip is None:
        return None

    settings = get_settings()
    now = now or datetime.utcnow()
    snapshot = build_snapshot(db, trip)
    try:
        ensure_traveler(db, trip, user_id)
        submission = add_window_proposal(
            snapshot,
            user_id=user_id,
            description=description,
            now=now,
            start_hint=start_hint,
            end_hint=end_hint,
            today=now.date(),
            max_windows_per_user=settings.MAX_WINDOWS_PER_USER,
            max_window_days=settings.MAX_WINDOW_DAYS,
            similarity_threshold=settings.WINDOW_SIMILARITY_THRESHOLD,
        )
    except SchedulingError as e:
        db.rollback()
        logger.warning(f"Window rejected for trip {trip_id} user {user_id}: {e.code} {e}")
        raise

    proposal = submission.proposal
    window = DateWindow(
        trip_id=trip.id,
        user_id=user_id,
        description=proposal.description,
        start_hint=proposal.start_hint,
        end_hint=proposal.end_hint,
        precision=submission.precision,
        archived=False,
        created_at=proposal.created_at,
    )
    db.add(window)
    mark_scheduling_started(trip)
    db.commit()
    db.refresh(window)

    logger.info(
        f"Window {window.id} proposed on trip {trip.id} by {user_id} "
        f"({len(submission.similar)} similar)"
    )
    return CreatedWindow(window=window, submission=submission)


def set_window_preference(
    db: Session,
    *,
    trip: Trip,
    user_id: str,
    window_id: int,
    preference: WindowPreferenceType,
    note: Optional[str] = None,
) -> DateWindowPreference:
    """Upsert keyed by (window, user); the latest stance wins."""
    snapshot = build_snapshot(db, trip)
    try:
        ensure_traveler(db, trip, user_id)
        record_preference(
            snapshot,
            user_id=user_id,
            window_id=window_id,
            preference=preference,
            note=note,
        )
    except SchedulingError as e:
        logger.warning(f"Preference rejected for window {window_id} user {user_id}: {e.code}")
        raise

    now = datetime.utcnow()
    row = (
        db.query(DateWindowPreference)
        .filter_by(window_id=window_id, user_id=user_id)
        .first()
    )
    if row is None:
        row = DateWindowPreference(
            trip_id=trip.id,
            window_id=window_id,
            user_id=user_id,
            created_at=now,
        )
        db.add(row)

    row.preference = WindowPreferenceType(preference).value
    row.note = note
    row.updated_at = now

    db.commit()
    db.refresh(row)
    return row


def compress_windows(
    db: Session,
    *,
    trip: Trip,
    actor_id: str,
    window_ids: Iterable[int],
) -> List[DateWindow]:
    """Leader archives windows; they drop out of the ranking but stay stored."""
    snapshot = build_snapshot(db, trip)
    window_ids = list(window_ids)
    try:
        updated = archive_window_proposals(snapshot, actor_id=actor_id, window_ids=window_ids)
    except SchedulingError as e:
        logger.warning(f"Compress rejected for trip {trip.id} by {actor_id}: {e.code}")
        raise

    archived_ids = {w.id for w in updated if w.archived}
    rows = db.query(DateWindow).filter(DateWindow.trip_id == trip.id).all()
    for row in rows:
        row.archived = row.id in archived_ids

    db.commit()

    logger.info(f"Trip {trip.id}: leader archived windows {sorted(window_ids)}")
    return [r for r in rows if not r.archived]


def get_window_board(
    db: Session,
    trip: Trip,
    leader_override: bool = False,
) -> WindowBoard:
    """Ranked active windows plus whether the leader may propose dates."""
    settings = get_settings()
    snapshot = build_snapshot(db, trip)
    roster = active_traveler_ids(db, trip.id)
    readiness = evaluate_proposal_readiness(
        snapshot,
        roster,
        leader_override=leader_override,
        small_group_max=settings.SMALL_GROUP_MAX_TRAVELERS,
        large_group_min_support=settings.LARGE_GROUP_MIN_SUPPORT,
    )
    preferences = [p for p in snapshot.window_preferences if p.user_id in roster]
    ranked = rank_window_proposals(snapshot.window_proposals, preferences)
    return WindowBoard(ranked=ranked, readiness=readiness)
