# datefunnel/routers/date_proposals.py
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from datefunnel.db.session import get_db
from datefunnel.routers.errors import to_http_exception, trip_not_found
from datefunnel.scheduling.errors import SchedulingError
from datefunnel.schemas.scheduling import DateProposalCreate, DateReactionPayload, LockPayload
from datefunnel.services.date_proposal_service import (
    create_date_proposal,
    get_date_proposal_status,
    lock_trip_dates,
    react_to_date_proposal,
)
from datefunnel.services.trip_service import get_trip

router = APIRouter()


def _status_dict(trip_id: int, status) -> Dict[str, Any]:
    proposal = status.proposal
    return {
        "trip_id": trip_id,
        "proposal": (
            {
                "startDate": proposal.start_date.isoformat(),
                "endDate": proposal.end_date.isoformat(),
                "proposedBy": proposal.proposed_by,
                "proposedAt": proposal.proposed_at.isoformat() if proposal.proposed_at else None,
                "note": proposal.note,
            }
            if proposal
            else None
        ),
        "reactions": [
            {"userId": r.user_id, "reactionType": r.reaction_type.value, "note": r.note}
            for r in status.reactions
        ],
        "approvals": status.approvals,
        "requiredApprovals": status.required_approvals,
        "lockEligible": status.lock_eligible,
        "adjustments": [
            {
                "startDate": a.start_date.isoformat(),
                "endDate": a.end_date.isoformat(),
                "label": a.label,
            }
            for a in status.adjustments
        ],
    }


@router.post("/{trip_id}/date-proposal")
def propose_dates_endpoint(
        trip_id: int,
        payload: DateProposalCreate,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Leader proposes concrete dates. Window submissions freeze from here on.

    Without `leader_override` this needs the leading window to have reached
    its support threshold.
    """
    try:
        trip = create_date_proposal(
            db,
            trip_id=trip_id,
            actor_id=payload.actor_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            note=payload.note,
            leader_override=payload.leader_override,
            replace_existing=payload.replace,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    if trip is None:
        raise trip_not_found()

    return _status_dict(trip.id, get_date_proposal_status(db, trip))


@router.get("/{trip_id}/date-proposal")
def get_date_proposal(
        trip_id: int,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    trip = get_trip(db, trip_id)
    if not trip:
        raise trip_not_found()

    return _status_dict(trip.id, get_date_proposal_status(db, trip))


@router.post("/{trip_id}/date-proposal/reactions")
def react_endpoint(
        trip_id: int,
        payload: DateReactionPayload,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    trip = get_trip(db, trip_id)
    if not trip:
        raise trip_not_found()

    try:
        react_to_date_proposal(
            db,
            trip=trip,
            user_id=payload.user_id,
            reaction_type=payload.reaction_type,
            note=payload.note,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    return _status_dict(trip.id, get_date_proposal_status(db, trip))


@router.post("/{trip_id}/lock")
def lock_endpoint(
        trip_id: int,
        payload: LockPayload,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Leader locks the proposed dates; the trip becomes immutable."""
    trip = get_trip(db, trip_id)
    if not trip:
        raise trip_not_found()

    try:
        trip = lock_trip_dates(
            db,
            trip=trip,
            actor_id=payload.actor_id,
            leader_override=payload.leader_override,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    return {
        "trip_id": trip.id,
        "status": trip.status,
        "lockedStartDate": trip.locked_start_date.isoformat(),
        "lockedEndDate": trip.locked_end_date.isoformat(),
    }
