# datefunnel/scheduling/guards.py
"""
Stage gate consulted by every write path before it mutates anything.

Canonical stage order for collaborative trips:
  proposed -> scheduling (first availability / window)
  scheduling -> locked (leader locks an approved date proposal)
  locked -> completed (outside this engine)
Any stage -> canceled (leader).
"""
from typing import Optional

from datefunnel.scheduling.errors import SchedulingConflict
from datefunnel.scheduling.types import Canceled, Completed, TripSnapshot, TripStatus

SUBMIT_AVAILABILITY = "submit_availability"
PROPOSE_WINDOW = "propose_window"
SET_WINDOW_PREFERENCE = "set_window_preference"
COMPRESS_WINDOWS = "compress_windows"
PROPOSE_DATES = "propose_dates"
REACT_TO_DATES = "react_to_dates"
LOCK_DATES = "lock_dates"
CANCEL_TRIP = "cancel_trip"

LEADER_ONLY_ACTIONS = {COMPRESS_WINDOWS, PROPOSE_DATES, LOCK_DATES, CANCEL_TRIP}
SCHEDULING_ACTIONS = {
    SUBMIT_AVAILABILITY,
    PROPOSE_WINDOW,
    SET_WINDOW_PREFERENCE,
    COMPRESS_WINDOWS,
    PROPOSE_DATES,
    REACT_TO_DATES,
    LOCK_DATES,
}
KNOWN_ACTIONS = SCHEDULING_ACTIONS | {CANCEL_TRIP}


def windows_frozen(trip: TripSnapshot) -> bool:
    """New window proposals stop once a concrete date proposal exists."""
    return trip.date_proposal is not None


def can_submit_window(trip: TripSnapshot) -> bool:
    if trip.is_hosted or trip.dates_locked or windows_frozen(trip):
        return False
    return not isinstance(trip.stage, (Canceled, Completed))


def ensure_action_allowed(
    trip: TripSnapshot,
    action: str,
    actor_id: Optional[str] = None,
) -> None:
    """
    Raise SchedulingConflict when `action` is not legal for this trip now.

    Returns None when the action may proceed.
    """
    if action not in KNOWN_ACTIONS:
        raise SchedulingConflict(f"Unknown action: {action}", code="UNKNOWN_ACTION")

    if isinstance(trip.stage, Canceled):
        raise SchedulingConflict(
            "This trip has been canceled and cannot be modified",
            code="TRIP_CANCELED",
        )
    if isinstance(trip.stage, Completed):
        raise SchedulingConflict(
            "This trip has been completed and cannot be modified",
            code="TRIP_COMPLETED",
        )

    if action in LEADER_ONLY_ACTIONS and not trip.is_leader(actor_id):
        raise SchedulingConflict(
            "Only the trip leader can perform this action",
            code="LEADER_ONLY",
        )

    if action == CANCEL_TRIP:
        return

    if trip.is_hosted:
        raise SchedulingConflict(
            "Hosted trip dates are fixed at creation; scheduling is closed.",
        )
    if trip.dates_locked:
        raise SchedulingConflict("Dates are locked; scheduling is closed.")

    if action == SUBMIT_AVAILABILITY and trip.status == TripStatus.VOTING:
        raise SchedulingConflict("Availability is frozen while voting is open.")

    if action == PROPOSE_WINDOW and windows_frozen(trip):
        raise SchedulingConflict(
            "Dates have been proposed; new windows are closed.",
            code="WINDOWS_FROZEN",
        )
