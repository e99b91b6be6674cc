# datefunnel/scheduling/funnel.py
from dataclasses import dataclass
from typing import Iterable, Optional

from datefunnel.scheduling.guards import can_submit_window, windows_frozen
from datefunnel.scheduling.reactions import count_approvals, required_approvals
from datefunnel.scheduling.types import SchedulingFunnelState, TripSnapshot
from datefunnel.scheduling.window_ledger import active_window_proposals


def derive_funnel_state(
    trip: TripSnapshot,
    member_count: Optional[int] = None,
    member_ids: Optional[Iterable[str]] = None,
) -> SchedulingFunnelState:
    """
    Derive the scheduling phase from the trip as it is right now.

    Nothing is stored: the same snapshot always yields the same state.

    1. hosted                        -> HOSTED_LOCKED
    2. dates locked                  -> DATES_LOCKED
    3. date proposal, enough WORKS   -> READY_TO_LOCK
       date proposal otherwise       -> DATE_PROPOSED
    4. any active window proposal    -> WINDOWS_OPEN
    5. otherwise                     -> NO_DATES

    When `member_ids` is given the roster size comes from it and
    `member_count` is ignored.
    """
    if trip.is_hosted:
        return SchedulingFunnelState.HOSTED_LOCKED

    if trip.dates_locked:
        return SchedulingFunnelState.DATES_LOCKED

    if trip.date_proposal is not None:
        if member_ids is not None:
            members = list(member_ids)
            member_count = len(members)
        else:
            members = None
        approvals = count_approvals(trip.date_reactions, members)
        if approvals >= required_approvals(member_count or 0):
            return SchedulingFunnelState.READY_TO_LOCK
        return SchedulingFunnelState.DATE_PROPOSED

    if active_window_proposals(trip.window_proposals):
        return SchedulingFunnelState.WINDOWS_OPEN

    return SchedulingFunnelState.NO_DATES


@dataclass(frozen=True)
class FunnelView:
    state: SchedulingFunnelState
    windows_frozen: bool
    can_submit_window: bool
    approvals: int
    required_approvals: int


def build_funnel_view(trip: TripSnapshot, member_ids: Iterable[str]) -> FunnelView:
    members = list(member_ids)
    return FunnelView(
        state=derive_funnel_state(trip, member_ids=members),
        windows_frozen=windows_frozen(trip),
        can_submit_window=can_submit_window(trip),
        approvals=count_approvals(trip.date_reactions, members),
        required_approvals=required_approvals(len(members)),
    )
