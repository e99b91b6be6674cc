# datefunnel/services/trip_service.py
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from datefunnel.models.date_reaction import DateProposalReaction
from datefunnel.models.date_window import DateWindow, DateWindowPreference
from datefunnel.models.trip import TravelerStatus, Trip, TripTraveler
from datefunnel.scheduling import guards
from datefunnel.scheduling.errors import SchedulingConflict, SchedulingValidationError
from datefunnel.scheduling.funnel import FunnelView, build_funnel_view
from datefunnel.scheduling.types import (
    DateProposal,
    DateReaction,
    DateReactionType,
    TripSnapshot,
    TripStatus,
    TripType,
    WindowPreference,
    WindowPreferenceType,
    WindowProposal,
    stage_from_record,
)

logger = logging.getLogger(__name__)


def create_trip(
    db: Session,
    *,
    title: str,
    created_by: str,
    trip_type: TripType = TripType.COLLABORATIVE,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    duration_days: int = 3,
    locked_start_date: Optional[date] = None,
    locked_end_date: Optional[date] = None,
) -> Trip:
    """
    Create a trip and put its creator (the leader) on the roster.

    - collaborative trips need a candidate range and start in `proposed`
    - hosted trips have their dates locked at creation and never enter
      the scheduling funnel
    """
    trip_type = TripType(trip_type)

    if duration_days is None or duration_days <= 0:
        raise SchedulingValidationError("duration_days must be positive")

    if (start_date is None) != (end_date is None):
        raise SchedulingValidationError("startDate and endDate must be given together")
    if start_date is not None and start_date > end_date:
        raise SchedulingValidationError(
            f"startDate ({start_date.isoformat()}) must be <= endDate ({end_date.isoformat()})"
        )

    if trip_type == TripType.COLLABORATIVE:
        if start_date is None:
            raise SchedulingValidationError("A collaborative trip needs a candidate date range")
        status = TripStatus.PROPOSED
        locked_start_date = locked_end_date = None
        dates_locked = False
    else:
        locked_start_date = locked_start_date or start_date
        locked_end_date = locked_end_date or end_date
        if locked_start_date is None or locked_end_date is None:
            raise SchedulingValidationError("A hosted trip needs its dates at creation")
        if locked_start_date > locked_end_date:
            raise SchedulingValidationError("lockedStartDate must be <= lockedEndDate")
        status = TripStatus.LOCKED
        dates_locked = True

    trip = Trip(
        title=title,
        created_by=created_by,
        type=trip_type.value,
        status=status.value,
        start_date=start_date,
        end_date=end_date,
        duration_days=duration_days,
        locked_start_date=locked_start_date,
        locked_end_date=locked_end_date,
        dates_locked=dates_locked,
    )
    trip.travelers.append(TripTraveler(user_id=created_by, status=TravelerStatus.ACTIVE))

    db.add(trip)
    db.commit()
    db.refresh(trip)

    logger.info(f"Created {trip_type.value} trip {trip.id} for leader {created_by}")
    return trip


def get_trip(db: Session, trip_id: int, for_update: bool = False) -> Optional[Trip]:
    query = db.query(Trip).filter_by(id=trip_id)
    if for_update:
        # Row lock on databases that support it; window freeze checks and
        # date proposal writes serialize on the trip row.
        query = query.with_for_update()
    return query.first()


def active_traveler_ids(db: Session, trip_id: int) -> List[str]:
    rows = (
        db.query(TripTraveler.user_id)
        .filter(
            TripTraveler.trip_id == trip_id,
            TripTraveler.status == TravelerStatus.ACTIVE,
        )
        .order_by(TripTraveler.id.asc())
        .all()
    )
    return [r.user_id for r in rows]


def add_traveler(db: Session, trip: Trip, user_id: str) -> TripTraveler:
    """Idempotent: re-joining reactivates the existing roster entry."""
    if trip.status == TripStatus.CANCELED.value:
        raise SchedulingConflict(
            "This trip has been canceled and cannot be modified",
            code="TRIP_CANCELED",
        )

    traveler = db.query(TripTraveler).filter_by(trip_id=trip.id, user_id=user_id).first()
    if traveler is None:
        traveler = TripTraveler(trip_id=trip.id, user_id=user_id, status=TravelerStatus.ACTIVE)
        db.add(traveler)
    else:
        traveler.status = TravelerStatus.ACTIVE

    db.commit()
    db.refresh(traveler)
    return traveler


def ensure_traveler(db: Session, trip: Trip, user_id: str) -> None:
    if user_id not in active_traveler_ids(db, trip.id):
        raise SchedulingConflict(
            f"User {user_id} is not a traveler on this trip",
            code="NOT_A_TRAVELER",
        )


def build_snapshot(db: Session, trip: Trip) -> TripSnapshot:
    """
    Read everything the engine needs for one trip into a TripSnapshot.
    """
    windows = (
        db.query(DateWindow)
        .filter_by(trip_id=trip.id)
        .order_by(DateWindow.created_at.asc(), DateWindow.id.asc())
        .all()
    )
    preferences = (
        db.query(DateWindowPreference)
        .filter_by(trip_id=trip.id)
        .order_by(DateWindowPreference.id.asc())
        .all()
    )
    reactions = (
        db.query(DateProposalReaction)
        .filter_by(trip_id=trip.id)
        .order_by(DateProposalReaction.id.asc())
        .all()
    )

    date_proposal = None
    if trip.proposed_start_date is not None and trip.proposed_end_date is not None:
        date_proposal = DateProposal(
            start_date=trip.proposed_start_date,
            end_date=trip.proposed_end_date,
            proposed_by=trip.proposed_by,
            proposed_at=trip.proposed_at,
            note=trip.proposal_note,
        )

    return TripSnapshot(
        id=trip.id,
        type=TripType(trip.type),
        stage=stage_from_record(
            trip.status,
            trip.locked_start_date,
            trip.locked_end_date,
            bool(trip.dates_locked),
        ),
        start_date=trip.start_date,
        end_date=trip.end_date,
        duration_days=trip.duration_days,
        created_by=trip.created_by,
        date_proposal=date_proposal,
        window_proposals=tuple(
            WindowProposal(
                id=w.id,
                user_id=w.user_id,
                description=w.description,
                created_at=w.created_at,
                start_hint=w.start_hint,
                end_hint=w.end_hint,
                archived=bool(w.archived),
            )
            for w in windows
        ),
        window_preferences=tuple(
            WindowPreference(
                user_id=p.user_id,
                window_id=p.window_id,
                preference=WindowPreferenceType(p.preference),
                note=p.note,
            )
            for p in preferences
        ),
        date_reactions=tuple(
            DateReaction(
                user_id=r.user_id,
                reaction_type=DateReactionType(r.reaction_type),
                note=r.note,
            )
            for r in reactions
        ),
    )


def get_funnel_view(db: Session, trip: Trip) -> FunnelView:
    return build_funnel_view(build_snapshot(db, trip), active_traveler_ids(db, trip.id))


def mark_scheduling_started(trip: Trip) -> None:
    """proposed -> scheduling on the first scheduling input. Caller commits."""
    if trip.status == TripStatus.PROPOSED.value:
        trip.status = TripStatus.SCHEDULING.value
        logger.info(f"Trip {trip.id} moved to scheduling")


def cancel_trip(db: Session, trip: Trip, actor_id: str) -> Trip:
    snapshot = build_snapshot(db, trip)
    try:
        guards.ensure_action_allowed(snapshot, guards.CANCEL_TRIP, actor_id)
    except SchedulingConflict as e:
        logger.warning(f"Cancel rejected for trip {trip.id} by {actor_id}: {e.code}")
        raise

    trip.status = TripStatus.CANCELED.value
    db.commit()
    db.refresh(trip)

    logger.info(f"Trip {trip.id} canceled by {actor_id}")
    return trip
