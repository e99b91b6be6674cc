# datefunnel/services/date_proposal_service.py
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from datefunnel.config import get_settings
from datefunnel.models.date_reaction import DateProposalReaction
from datefunnel.models.trip import Trip
from datefunnel.scheduling import reactions as gate
from datefunnel.scheduling.errors import SchedulingError
from datefunnel.scheduling.readiness import evaluate_proposal_readiness
from datefunnel.scheduling.types import DateProposal, DateReaction, DateReactionType, TripStatus
from datefunnel.services.trip_service import (
    active_traveler_ids,
    build_snapshot,
    ensure_traveler,
    get_trip,
)

logger = logging.getLogger(__name__)


@dataclass
class DateProposalStatus:
    proposal: Optional[DateProposal]
    reactions: List[DateReaction]
    approvals: int
    required_approvals: int
    lock_eligible: bool
    adjustments: List[gate.DateAdjustment]


def create_date_proposal(
    db: Session,
    *,
    trip_id: int,
    actor_id: str,
    start_date: date,
    end_date: date,
    note: Optional[str] = None,
    leader_override: bool = False,
    replace_existing: bool = False,
    now: Optional[datetime] = None,
) -> Optional[Trip]:
    """
    Leader proposes a concrete date range.

    - needs organic readiness of the leading window, or `leader_override`
    - replacing an existing proposal wipes its reactions
    - the trip row is locked for the duration so window submissions
      cannot slip in around the freeze

    Returns None when the trip does not exist.
    """
    trip = get_trip(db, trip_id, for_update=True)
    if trip is None:
        return None

    settings = get_settings()
    snapshot = build_snapshot(db, trip)
    try:
        readiness = evaluate_proposal_readiness(
            snapshot,
            active_traveler_ids(db, trip.id),
            leader_override=leader_override,
            small_group_max=settings.SMALL_GROUP_MAX_TRAVELERS,
            large_group_min_support=settings.LARGE_GROUP_MIN_SUPPORT,
        )
        updated = gate.propose_dates(
            snapshot,
            actor_id=actor_id,
            start_date=start_date,
            end_date=end_date,
            now=now or datetime.utcnow(),
            readiness=readiness,
            note=note,
            replace_existing=replace_existing,
        )
    except SchedulingError as e:
        db.rollback()
        logger.warning(f"Date proposal rejected for trip {trip_id} by {actor_id}: {e.code} {e}")
        raise

    replaced = snapshot.date_proposal is not None
    if replaced:
        db.query(DateProposalReaction).filter(DateProposalReaction.trip_id == trip.id).delete()

    proposal = updated.date_proposal
    trip.proposed_start_date = proposal.start_date
    trip.proposed_end_date = proposal.end_date
    trip.proposed_by = proposal.proposed_by
    trip.proposed_at = proposal.proposed_at
    trip.proposal_note = proposal.note
    if trip.status == TripStatus.PROPOSED.value:
        trip.status = TripStatus.SCHEDULING.value

    db.commit()
    db.refresh(trip)

    logger.info(
        f"Trip {trip.id}: dates {'re-proposed' if replaced else 'proposed'} "
        f"{proposal.start_date.isoformat()}..{proposal.end_date.isoformat()} by {actor_id}"
        f"{' (leader override)' if leader_override and not readiness.proposal_ready else ''}"
    )
    return trip


def react_to_date_proposal(
    db: Session,
    *,
    trip: Trip,
    user_id: str,
    reaction_type: DateReactionType,
    note: Optional[str] = None,
) -> DateProposalReaction:
    """Upsert keyed by (trip, user): one reaction per traveler, latest wins."""
    snapshot = build_snapshot(db, trip)
    try:
        ensure_traveler(db, trip, user_id)
        gate.record_reaction(snapshot, user_id=user_id, reaction_type=reaction_type, note=note)
    except SchedulingError as e:
        logger.warning(f"Reaction rejected for trip {trip.id} user {user_id}: {e.code}")
        raise

    now = datetime.utcnow()
    row = db.query(DateProposalReaction).filter_by(trip_id=trip.id, user_id=user_id).first()
    if row is None:
        row = DateProposalReaction(trip_id=trip.id, user_id=user_id, created_at=now)
        db.add(row)

    row.reaction_type = DateReactionType(reaction_type).value
    row.note = note
    row.updated_at = now

    db.commit()
    db.refresh(row)
    return row


def lock_trip_dates(
    db: Session,
    *,
    trip: Trip,
    actor_id: str,
    leader_override: bool = False,
) -> Trip:
    """Leader locks the proposed dates once approvals reach the threshold."""
    snapshot = build_snapshot(db, trip)
    try:
        locked = gate.lock_dates(
            snapshot,
            actor_id=actor_id,
            member_ids=active_traveler_ids(db, trip.id),
            leader_override=leader_override,
        )
    except SchedulingError as e:
        logger.warning(f"Lock rejected for trip {trip.id} by {actor_id}: {e.code} {e}")
        raise

    trip.status = TripStatus.LOCKED.value
    trip.locked_start_date = locked.stage.start_date
    trip.locked_end_date = locked.stage.end_date
    trip.dates_locked = True

    db.commit()
    db.refresh(trip)

    logger.info(
        f"Trip {trip.id} locked {trip.locked_start_date.isoformat()}.."
        f"{trip.locked_end_date.isoformat()} by {actor_id}"
    )
    return trip


def get_date_proposal_status(db: Session, trip: Trip) -> DateProposalStatus:
    snapshot = build_snapshot(db, trip)
    members = active_traveler_ids(db, trip.id)
    return DateProposalStatus(
        proposal=snapshot.date_proposal,
        reactions=list(snapshot.date_reactions),
        approvals=gate.count_approvals(snapshot.date_reactions, members),
        required_approvals=gate.required_approvals(len(members)),
        lock_eligible=gate.is_lock_eligible(snapshot, len(members), members),
        adjustments=gate.suggest_date_adjustments(
            snapshot.date_proposal,
            shift_days=get_settings().DATE_ADJUSTMENT_DAYS,
        ),
    )
