# datefunnel/routers/windows.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from datefunnel.db.session import get_db
from datefunnel.models.date_window import DateWindow
from datefunnel.routers.errors import to_http_exception, trip_not_found
from datefunnel.scheduling.errors import SchedulingError
from datefunnel.scheduling.types import WindowProposal
from datefunnel.schemas.scheduling import CompressPayload, WindowCreate, WindowPreferencePayload
from datefunnel.services.trip_service import get_trip
from datefunnel.services.window_service import (
    compress_windows,
    get_window_board,
    set_window_preference,
    submit_window,
)

router = APIRouter()


def _iso(d):
    return d.isoformat() if d is not None else None


def _window_dict(w) -> Dict[str, Any]:
    # works for both DateWindow rows and WindowProposal values
    return {
        "id": w.id,
        "userId": w.user_id,
        "description": w.description,
        "startHint": _iso(w.start_hint),
        "endHint": _iso(w.end_hint),
        "archived": bool(w.archived),
        "createdAt": _iso(w.created_at),
    }


def _optional_window(w: Optional[WindowProposal]) -> Optional[Dict[str, Any]]:
    return _window_dict(w) if w is not None else None


@router.post("/{trip_id}/windows")
def propose_window(
        trip_id: int,
        payload: WindowCreate,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Suggest a date window ("early March", "2025-03-07 to 2025-03-09", ...).

    Similar existing windows are reported so the client can nudge the
    traveler towards supporting one of them instead.
    """
    try:
        created = submit_window(
            db,
            trip_id=trip_id,
            user_id=payload.user_id,
            description=payload.description,
            start_hint=payload.start_hint,
            end_hint=payload.end_hint,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    if created is None:
        raise trip_not_found()

    return {
        "window": _window_dict(created.window),
        "precision": created.submission.precision,
        "similarWindows": [
            {"window": _window_dict(s.window), "score": round(s.score, 3)}
            for s in created.submission.similar
        ],
    }


@router.get("/{trip_id}/windows")
def list_windows(
        trip_id: int,
        leader_override: bool = False,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Active windows ranked by support, plus proposal readiness."""
    trip = get_trip(db, trip_id)
    if not trip:
        raise trip_not_found()

    board = get_window_board(db, trip, leader_override=leader_override)
    readiness = board.readiness

    return {
        "trip_id": trip.id,
        "windows": [
            {
                **_window_dict(s.window),
                "works": s.counts.works,
                "maybe": s.counts.maybe,
                "no": s.counts.no,
                "score": s.score,
            }
            for s in board.ranked
        ],
        "readiness": {
            "proposalReady": readiness.proposal_ready,
            "canPropose": readiness.can_propose,
            "reason": readiness.reason,
            "leadingWindow": _optional_window(readiness.leading_window),
            "leaderCount": readiness.leader_count,
            "leaderUserIds": readiness.leader_user_ids,
            "runnerUp": (
                {
                    "window": _window_dict(readiness.runner_up.window),
                    "count": readiness.runner_up.count,
                }
                if readiness.runner_up
                else None
            ),
            "stats": {
                "totalTravelers": readiness.stats.total_travelers,
                "responderCount": readiness.stats.responder_count,
                "leaderCount": readiness.stats.leader_count,
                "thresholdNeeded": readiness.stats.threshold_needed,
                "windowCount": readiness.stats.window_count,
            },
        },
    }


@router.post("/{trip_id}/windows/{window_id}/preference")
def set_preference(
        trip_id: int,
        window_id: int,
        payload: WindowPreferencePayload,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    trip = get_trip(db, trip_id)
    if not trip:
        raise trip_not_found()

    window = db.get(DateWindow, window_id)
    if window is None or window.trip_id != trip.id:
        raise HTTPException(status_code=404, detail="Window not found")

    try:
        row = set_window_preference(
            db,
            trip=trip,
            user_id=payload.user_id,
            window_id=window_id,
            preference=payload.preference,
            note=payload.note,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    return {
        "windowId": row.window_id,
        "userId": row.user_id,
        "preference": row.preference,
        "note": row.note,
    }


@router.post("/{trip_id}/windows/compress")
def compress(
        trip_id: int,
        payload: CompressPayload,
        db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """Leader-only: archive the listed windows to narrow the choice."""
    trip = get_trip(db, trip_id)
    if not trip:
        raise trip_not_found()

    try:
        active = compress_windows(
            db,
            trip=trip,
            actor_id=payload.actor_id,
            window_ids=payload.window_ids,
        )
    except SchedulingError as e:
        raise to_http_exception(e)

    return {"trip_id": trip.id, "windows": [_window_dict(w) for w in active]}
