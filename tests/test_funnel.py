# tests/test_funnel.py
from dataclasses import replace
from datetime import date, datetime

import pytest

from datefunnel.scheduling import guards
from datefunnel.scheduling.errors import SchedulingConflict, SchedulingValidationError
from datefunnel.scheduling.funnel import build_funnel_view, derive_funnel_state
from datefunnel.scheduling.types import (
    Canceled,
    Completed,
    DateProposal,
    DateReaction,
    DateReactionType as R,
    Locked,
    Proposed,
    SchedulingFunnelState as F,
    Scheduling,
    TripSnapshot,
    TripStatus,
    TripType,
    Voting,
    WindowProposal,
    stage_from_record,
)

NOW = datetime(2025, 1, 10, 12, 0)
PROPOSAL = DateProposal(date(2025, 3, 7), date(2025, 3, 9), "leader", NOW)
MEMBERS = ["leader", "u1", "u2", "u3", "u4", "u5"]


def _trip(**kwargs):
    base = TripSnapshot(
        id=1,
        type=TripType.COLLABORATIVE,
        stage=Proposed(),
        start_date=date(2025, 3, 1),
        end_date=date(2025, 3, 31),
        created_by="leader",
    )
    return replace(base, **kwargs)


def _window(window_id, archived=False):
    return WindowProposal(window_id, "alice", "early March", NOW, archived=archived)


def test_hosted_trip_is_always_hosted_locked():
    trip = _trip(
        type=TripType.HOSTED,
        stage=Locked(date(2025, 5, 1), date(2025, 5, 3)),
        window_proposals=(_window(1),),
    )

    assert derive_funnel_state(trip) == F.HOSTED_LOCKED
    assert guards.can_submit_window(trip) is False


def test_locked_trip_is_dates_locked():
    trip = _trip(stage=Locked(date(2025, 3, 7), date(2025, 3, 9)))

    assert derive_funnel_state(trip) == F.DATES_LOCKED


def test_canceled_after_lock_stays_dates_locked():
    stage = stage_from_record("canceled", date(2025, 3, 7), date(2025, 3, 9), True)
    trip = _trip(
        stage=stage,
        date_proposal=PROPOSAL,
        date_reactions=(DateReaction("u1", R.WORKS),),
    )

    assert trip.dates_locked is True
    assert derive_funnel_state(trip, member_ids=["leader", "u1"]) == F.DATES_LOCKED
    assert guards.can_submit_window(trip) is False


def test_completed_trip_with_locked_dates_is_dates_locked():
    stage = stage_from_record("completed", date(2026, 3, 1), date(2026, 3, 5), True)
    proposal = DateProposal(date(2026, 3, 1), date(2026, 3, 5), "leader", NOW)
    trip = _trip(stage=stage, date_proposal=proposal, date_reactions=(DateReaction("u1", R.WORKS),))

    assert derive_funnel_state(trip, member_ids=["leader", "u1"]) == F.DATES_LOCKED


def test_canceled_before_lock_is_not_dates_locked():
    trip = _trip(stage=Canceled(), date_proposal=PROPOSAL)

    assert trip.dates_locked is False
    assert derive_funnel_state(trip, member_ids=MEMBERS) == F.DATE_PROPOSED


def test_roster_size_comes_from_member_ids():
    trip = _trip(stage=Scheduling(), date_proposal=PROPOSAL, date_reactions=(DateReaction("u1", R.WORKS),))

    # 1 WORKS of 6 is short of the 3 needed
    assert derive_funnel_state(trip, member_ids=MEMBERS) == F.DATE_PROPOSED
    assert derive_funnel_state(trip, member_ids=iter(MEMBERS)) == F.DATE_PROPOSED
    assert derive_funnel_state(trip, 1, MEMBERS) == F.DATE_PROPOSED
    # no roster at all falls back to the single-member threshold
    assert derive_funnel_state(trip) == F.READY_TO_LOCK


def test_windows_open_counts_active_windows_only():
    assert derive_funnel_state(_trip()) == F.NO_DATES
    assert derive_funnel_state(_trip(window_proposals=(_window(1, archived=True),))) == F.NO_DATES
    assert derive_funnel_state(_trip(window_proposals=(_window(1),))) == F.WINDOWS_OPEN


def test_build_funnel_view():
    proposal = DateProposal(date(2025, 3, 7), date(2025, 3, 9), "leader", NOW)
    trip = _trip(stage=Scheduling(), date_proposal=proposal, window_proposals=(_window(1),))

    view = build_funnel_view(trip, ["leader", "alice", "bob"])

    assert view.state == F.DATE_PROPOSED
    assert view.windows_frozen is True
    assert view.can_submit_window is False
    assert view.approvals == 0
    assert view.required_approvals == 2


def test_stage_from_record():
    assert stage_from_record("scheduling") == Scheduling()
    assert stage_from_record(None) == Scheduling()
    assert stage_from_record("voting") == Voting()
    # the flag alone means locked
    assert stage_from_record("scheduling", date(2025, 3, 7), date(2025, 3, 9), True) == Locked(
        date(2025, 3, 7), date(2025, 3, 9)
    )
    assert stage_from_record("canceled", date(2025, 3, 7), date(2025, 3, 9), True) == Canceled(
        date(2025, 3, 7), date(2025, 3, 9)
    )
    assert stage_from_record("canceled") == Canceled()
    assert stage_from_record("completed", date(2025, 3, 7), date(2025, 3, 9), True) == Completed(
        date(2025, 3, 7), date(2025, 3, 9)
    )

    with pytest.raises(SchedulingValidationError):
        stage_from_record("locked", date(2025, 3, 7), None)

    with pytest.raises(SchedulingValidationError):
        Locked(date(2025, 3, 9), date(2025, 3, 7))


def test_canceled_trip_blocks_everything():
    trip = _trip(stage=Canceled())

    for action in (guards.SUBMIT_AVAILABILITY, guards.PROPOSE_WINDOW, guards.CANCEL_TRIP):
        with pytest.raises(SchedulingConflict) as exc:
            guards.ensure_action_allowed(trip, action, "leader")
        assert exc.value.code == "TRIP_CANCELED"


def test_leader_may_cancel_a_locked_trip():
    trip = _trip(stage=Locked(date(2025, 3, 7), date(2025, 3, 9)))

    guards.ensure_action_allowed(trip, guards.CANCEL_TRIP, "leader")

    with pytest.raises(SchedulingConflict) as exc:
        guards.ensure_action_allowed(trip, guards.CANCEL_TRIP, "alice")
    assert exc.value.code == "LEADER_ONLY"

    with pytest.raises(SchedulingConflict) as exc:
        guards.ensure_action_allowed(trip, guards.SUBMIT_AVAILABILITY, "alice")
    assert exc.value.code == "STAGE_BLOCKED"


def test_voting_freezes_availability():
    trip = _trip(stage=Voting())

    with pytest.raises(SchedulingConflict):
        guards.ensure_action_allowed(trip, guards.SUBMIT_AVAILABILITY, "alice")
    assert trip.status == TripStatus.VOTING


def test_unknown_action():
    with pytest.raises(SchedulingConflict) as exc:
        guards.ensure_action_allowed(_trip(), "teleport", "leader")
    assert exc.value.code == "UNKNOWN_ACTION"
