# datefunnel/routers/trips.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from datefunnel.db.session import get_db
from datefunnel.models.trip import Trip
from datefunnel.routers.errors import to_http_exception, trip_not_found
from datefunnel.scheduling.errors import SchedulingError
from datefunnel.scheduling.types import DayAvailability, WeeklyBlock
from datefunnel.schemas.scheduling import (
    ActorPayload,
    AvailabilityPayload,
    TravelerAdd,
    TripCreate,
)
from datefunnel.services.availability_service import (
    get_normalized_availability,
    record_availability_for_user,
)
from datefunnel.services.consensus_service import find_consensus_windows_for_trip
from datefunnel.services.trip_service import (
    active_traveler_ids,
    add_traveler,
    cancel_trip,
    create_trip,
    get_funnel_view,
    get_trip,
)

router = APIRouter()


def _iso(d):
    return d.isoformat() if d is not None else None


def _trip_dict(trip: Trip) -> Dict[str, Any]:
    return {
        "id": trip.id,
        "title": trip.title,
        "createdBy": trip.created_by,
        "type": trip.type,
        "status": trip.status,
        "startDate": _iso(trip.start_date),
        "endDate": _iso(trip.end_date),
        "durationDays": trip.duration_days,
        "lockedStartDate": _iso(trip.locked_start_date),
        "lockedEndDate": _iso(trip.locked_end_date),
        "dateProposal": (
            {
                "startDate": _iso(trip.proposed_start_date),
                "endDate": _iso(trip.proposed_end_date),
                "proposedBy": trip.proposed_by,
                "proposedAt": trip.proposed_at.isoformat() if trip.proposed_at else None,
                "note": trip.proposal_note,
            }
            if trip.proposed_start_date is not None
            else None
        ),
    }


def _load_trip(db: Session, trip_id: int) -> Trip:
    trip = get_trip(db, trip_id)
    if not trip:
        raise trip_not_found()
    return trip


@router.post("")
def create_trip_endpoint(
        payload: TripCreate,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Create a collaborative trip (candidate range, dates decided by the
    group) or a hosted trip (dates fixed and locked at creation).
    """
    try:
        trip = create_trip(
            db,
            title=payload.title,
            created_by=payload.created_by,
            trip_type=payload.type,
            start_date=payload.start_date,
            end_date=payload.end_date,
            duration_days=payload.duration_days,
            locked_start_date=payload.locked_start_date,
            locked_end_date=payload.locked_end_date,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    return {"trip": _trip_dict(trip)}


@router.get("/{trip_id}")
def get_trip_endpoint(
        trip_id: int,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Fetch a trip with its derived scheduling funnel state.

    The state is recomputed from the stored data on every call.
    """
    trip = _load_trip(db, trip_id)
    view = get_funnel_view(db, trip)

    return {
        "trip": _trip_dict(trip),
        "travelers": active_traveler_ids(db, trip.id),
        "funnel": {
            "state": view.state.value,
            "windowsFrozen": view.windows_frozen,
            "canSubmitWindow": view.can_submit_window,
            "approvals": view.approvals,
            "requiredApprovals": view.required_approvals,
        },
    }


@router.post("/{trip_id}/travelers")
def add_traveler_endpoint(
        trip_id: int,
        payload: TravelerAdd,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    trip = _load_trip(db, trip_id)
    try:
        add_traveler(db, trip, payload.user_id)
    except SchedulingError as e:
        raise to_http_exception(e)

    return {"trip_id": trip.id, "travelers": active_traveler_ids(db, trip.id)}


@router.post("/{trip_id}/cancel")
def cancel_trip_endpoint(
        trip_id: int,
        payload: ActorPayload,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    trip = _load_trip(db, trip_id)
    try:
        trip = cancel_trip(db, trip, payload.actor_id)
    except SchedulingError as e:
        raise to_http_exception(e)

    return {"trip": _trip_dict(trip)}


@router.post("/{trip_id}/availability")
def submit_availability_endpoint(
        trip_id: int,
        payload: AvailabilityPayload,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Replace a traveler's availability for this trip.

    Accepts a broad status, weekly blocks and per-day entries in any
    combination; the previous submission for that user is discarded.
    """
    trip = _load_trip(db, trip_id)

    try:
        submission = record_availability_for_user(
            db,
            trip=trip,
            user_id=payload.user_id,
            broad_status=payload.broad_status,
            weekly_blocks=[
                WeeklyBlock(b.start_date, b.end_date, b.status) for b in payload.weekly_blocks
            ],
            days=[DayAvailability(a.day, a.status) for a in payload.availabilities],
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    return {
        "trip_id": trip.id,
        "user_id": payload.user_id,
        "saved": {
            "broad": submission.broad_status is not None,
            "weekly": len(submission.weekly_blocks),
            "perDay": len(submission.days),
        },
    }


@router.get("/{trip_id}/availability/{user_id}")
def get_normalized_availability_endpoint(
        trip_id: int,
        user_id: str,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Effective per-day status for one traveler (null = no data)."""
    trip = _load_trip(db, trip_id)

    try:
        normalized = get_normalized_availability(db, trip, user_id)
    except SchedulingError as e:
        raise to_http_exception(e)

    if normalized is None:
        raise HTTPException(status_code=404, detail="No availability submitted")

    return {
        "trip_id": trip.id,
        "user_id": user_id,
        "days": [
            {"day": day.isoformat(), "status": status.value if status else None}
            for day, status in sorted(normalized.items())
        ],
    }


@router.get("/{trip_id}/consensus")
def get_consensus_windows(
        trip_id: int,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Compute 2-3 promising date windows from everyone's availability.

    Note: This does NOT store anything; it only suggests windows.
    """
    trip = _load_trip(db, trip_id)

    try:
        windows = find_consensus_windows_for_trip(db, trip)
    except SchedulingError as e:
        raise to_http_exception(e)

    return {
        "trip_id": trip.id,
        "windows": [w.to_dict() for w in windows],
    }
