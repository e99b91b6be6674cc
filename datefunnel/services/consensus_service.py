# datefunnel/services/consensus_service.py
from typing import List

from sqlalchemy.orm import Session

from datefunnel.config import get_settings
from datefunnel.models.trip import Trip
from datefunnel.scheduling.consensus import score_consensus_windows
from datefunnel.scheduling.dates import candidate_days
from datefunnel.scheduling.normalizer import normalize_all
from datefunnel.scheduling.types import CandidateWindow, TripStatus, TripType
from datefunnel.services.availability_service import load_submissions


def find_consensus_windows_for_trip(db: Session, trip: Trip) -> List[CandidateWindow]:
    """
    Given:
      - a collaborative Trip (candidate range + duration_days)
      - every traveler's stored availability for it

    Returns:
      - 2-3 non-overlapping CandidateWindows, best first
      - [] for hosted / locked trips, or when nobody has submitted yet

    Recomputed on every call from the stored submissions; results are
    never written back.
    """
    if trip.type != TripType.COLLABORATIVE.value or trip.status == TripStatus.LOCKED.value:
        return []
    if trip.start_date is None or trip.end_date is None:
        return []

    submissions = load_submissions(db, trip.id)
    if not submissions:
        return []

    days = candidate_days(trip.start_date, trip.end_date)
    settings = get_settings()
    duration = trip.duration_days or settings.DEFAULT_TRIP_DURATION_DAYS

    return score_consensus_windows(
        normalize_all(submissions, days),
        days,
        duration,
        max_windows=settings.CONSENSUS_MAX_WINDOWS,
    )
