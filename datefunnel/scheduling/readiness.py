# datefunnel/scheduling/readiness.py
"""
Whether the leading window has enough support for the leader to propose
concrete dates.

Thresholds by total traveler count N:
  N <= 10: ceil(N / 2) supporters (majority of the whole group)
  N > 10:  max(ceil(R / 2), 5) supporters, R = distinct responders

A supporter is a traveler with a WORKS preference on the window.
"""
import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from datefunnel.scheduling.types import (
    TripSnapshot,
    WindowPreference,
    WindowPreferenceType,
    WindowProposal,
)
from datefunnel.scheduling.window_ledger import ScoredWindowProposal, rank_window_proposals

SMALL_GROUP_MAX_TRAVELERS = 10
LARGE_GROUP_MIN_SUPPORT = 5

REASON_NO_WINDOWS = "no_windows"
REASON_NO_TRAVELERS = "no_travelers"
REASON_THRESHOLD_MET = "threshold_met"
REASON_THRESHOLD_NOT_MET = "threshold_not_met"


@dataclass(frozen=True)
class RunnerUp:
    window: WindowProposal
    count: int


@dataclass(frozen=True)
class ReadinessStats:
    total_travelers: int
    responder_count: int
    leader_count: int
    threshold_needed: int
    window_count: int


@dataclass(frozen=True)
class ProposalReadiness:
    proposal_ready: bool
    reason: str
    leading_window: Optional[WindowProposal]
    leader_count: int
    runner_up: Optional[RunnerUp]
    stats: ReadinessStats
    leader_user_ids: List[str] = field(default_factory=list)
    leader_override: bool = False

    @property
    def can_propose(self) -> bool:
        return self.proposal_ready or self.leader_override


def support_threshold(
    total_travelers: int,
    responder_count: int,
    small_group_max: int = SMALL_GROUP_MAX_TRAVELERS,
    large_group_min_support: int = LARGE_GROUP_MIN_SUPPORT,
) -> int:
    if total_travelers <= small_group_max:
        return math.ceil(total_travelers / 2)
    return max(math.ceil(responder_count / 2), large_group_min_support)


def _supporters(window_id: int, preferences: List[WindowPreference]) -> List[str]:
    return sorted({
        p.user_id for p in preferences
        if p.window_id == window_id and p.preference == WindowPreferenceType.WORKS
    })


def evaluate_proposal_readiness(
    trip: TripSnapshot,
    travelers: Iterable[str],
    windows: Optional[Iterable[WindowProposal]] = None,
    preferences: Optional[Iterable[WindowPreference]] = None,
    *,
    leader_override: bool = False,
    small_group_max: int = SMALL_GROUP_MAX_TRAVELERS,
    large_group_min_support: int = LARGE_GROUP_MIN_SUPPORT,
) -> ProposalReadiness:
    """
    Pure evaluation over the trip's windows and preferences.

    `windows` / `preferences` default to the ones carried on the snapshot.
    Only preferences from travelers on the roster count. `leader_override`
    is reported on its own so callers can tell a forced proposal apart from
    an organically ready one; it never changes `proposal_ready`.
    """
    roster = set(travelers)
    windows = list(trip.window_proposals if windows is None else windows)
    preferences = [
        p for p in (trip.window_preferences if preferences is None else preferences)
        if p.user_id in roster
    ]

    ranked: List[ScoredWindowProposal] = rank_window_proposals(windows, preferences)
    active_ids = {s.window.id for s in ranked}
    responders = {p.user_id for p in preferences if p.window_id in active_ids}

    total = len(roster)
    threshold = support_threshold(
        total, len(responders), small_group_max, large_group_min_support
    )

    if not ranked:
        return ProposalReadiness(
            proposal_ready=False,
            reason=REASON_NO_WINDOWS,
            leading_window=None,
            leader_count=0,
            runner_up=None,
            stats=ReadinessStats(total, len(responders), 0, threshold, 0),
            leader_override=leader_override,
        )

    leader = ranked[0]
    leader_ids = _supporters(leader.window.id, preferences)
    runner_up = None
    if len(ranked) > 1:
        runner_up = RunnerUp(
            window=ranked[1].window,
            count=len(_supporters(ranked[1].window.id, preferences)),
        )

    if total == 0:
        ready, reason = False, REASON_NO_TRAVELERS
    else:
        ready = len(leader_ids) >= threshold
        reason = REASON_THRESHOLD_MET if ready else REASON_THRESHOLD_NOT_MET

    return ProposalReadiness(
        proposal_ready=ready,
        reason=reason,
        leading_window=leader.window,
        leader_count=len(leader_ids),
        runner_up=runner_up,
        stats=ReadinessStats(total, len(responders), len(leader_ids), threshold, len(ranked)),
        leader_user_ids=leader_ids,
        leader_override=leader_override,
    )
