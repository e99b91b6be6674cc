# tests/test_window_ledger.py
from dataclasses import replace
from datetime import date, datetime

import pytest

from datefunnel.scheduling.errors import SchedulingConflict, SchedulingValidationError
from datefunnel.scheduling.types import (
    DateProposal,
    Scheduling,
    TripSnapshot,
    TripType,
    WindowPreference,
    WindowPreferenceType as P,
    WindowProposal,
)
from datefunnel.scheduling.window_ledger import (
    add_window_proposal,
    archive_window_proposals,
    get_user_window_preference,
    rank_window_proposals,
    record_preference,
)

NOW = datetime(2025, 1, 10, 12, 0)


def _trip(**kwargs) -> TripSnapshot:
    base = TripSnapshot(
        id=1,
        type=TripType.COLLABORATIVE,
        stage=Scheduling(),
        start_date=date(2025, 3, 1),
        end_date=date(2025, 3, 31),
        created_by="leader",
    )
    return replace(base, **kwargs)


def _window(window_id, user_id="alice", start=None, end=None, archived=False):
    return WindowProposal(
        id=window_id,
        user_id=user_id,
        description=f"window {window_id}",
        created_at=NOW,
        start_hint=start,
        end_hint=end,
        archived=archived,
    )


def test_add_window_with_explicit_hints():
    result = add_window_proposal(
        _trip(),
        user_id="alice",
        description="Spring break",
        now=NOW,
        start_hint=date(2025, 3, 7),
        end_hint=date(2025, 3, 9),
    )

    assert result.proposal.id is None
    assert result.proposal.start_hint == date(2025, 3, 7)
    assert result.precision == "exact"
    assert result.similar == []


def test_add_window_parses_description():
    result = add_window_proposal(_trip(), user_id="alice", description="early March", now=NOW)

    assert result.proposal.start_hint == date(2025, 3, 1)
    assert result.proposal.end_hint == date(2025, 3, 7)
    assert result.precision == "approx"


def test_unparseable_description_is_kept_without_hints():
    result = add_window_proposal(
        _trip(), user_id="alice", description="after exams, ideally", now=NOW
    )

    assert result.proposal.description == "after exams, ideally"
    assert result.proposal.start_hint is None
    assert result.precision is None


def test_similar_windows_are_reported():
    existing = _window(1, user_id="bob", start=date(2025, 3, 7), end=date(2025, 3, 9))
    trip = _trip(window_proposals=(existing,))

    result = add_window_proposal(
        trip,
        user_id="alice",
        description="Mar 8-10",
        now=NOW,
    )

    assert len(result.similar) == 1
    assert result.similar[0].window.id == 1
    assert result.similar[0].score == 0.67


def test_window_limit_per_user_counts_active_only():
    trip = _trip(
        window_proposals=(
            _window(1),
            _window(2, archived=True),
        )
    )
    add_window_proposal(trip, user_id="alice", description="late March", now=NOW)

    trip = _trip(window_proposals=(_window(1), _window(2)))
    with pytest.raises(SchedulingConflict) as exc:
        add_window_proposal(trip, user_id="alice", description="late March", now=NOW)
    assert exc.value.code == "WINDOW_LIMIT"


def test_windows_freeze_once_dates_are_proposed():
    proposal = DateProposal(date(2025, 3, 7), date(2025, 3, 9), "leader", NOW)
    with pytest.raises(SchedulingConflict) as exc:
        add_window_proposal(
            _trip(date_proposal=proposal), user_id="alice", description="late March", now=NOW
        )
    assert exc.value.code == "WINDOWS_FROZEN"


def test_hints_outside_trip_range_rejected():
    with pytest.raises(SchedulingValidationError) as exc:
        add_window_proposal(
            _trip(),
            user_id="alice",
            description="April trip",
            now=NOW,
            start_hint=date(2025, 4, 1),
            end_hint=date(2025, 4, 3),
        )
    assert exc.value.code == "OUT_OF_RANGE"


def test_blank_description_rejected():
    with pytest.raises(SchedulingValidationError):
        add_window_proposal(_trip(), user_id="alice", description="   ", now=NOW)


def test_record_preference_latest_wins():
    trip = _trip(
        window_proposals=(_window(1),),
        window_preferences=(WindowPreference("bob", 1, P.NO),),
    )

    prefs = record_preference(trip, user_id="bob", window_id=1, preference=P.WORKS)

    assert prefs == (WindowPreference("bob", 1, P.WORKS),)
    updated = replace(trip, window_preferences=prefs)
    assert get_user_window_preference(updated, "bob", 1).preference == P.WORKS
    assert get_user_window_preference(updated, "carol", 1) is None


def test_record_preference_rejects_unknown_and_archived_windows():
    trip = _trip(window_proposals=(_window(1, archived=True),))

    with pytest.raises(SchedulingValidationError) as exc:
        record_preference(trip, user_id="bob", window_id=99, preference=P.WORKS)
    assert exc.value.code == "UNKNOWN_WINDOW"

    with pytest.raises(SchedulingConflict) as exc:
        record_preference(trip, user_id="bob", window_id=1, preference=P.WORKS)
    assert exc.value.code == "WINDOW_ARCHIVED"


def test_rank_window_proposals():
    windows = (_window(1), _window(2), _window(3), _window(4, archived=True))
    prefs = [
        WindowPreference("a", 1, P.MAYBE),
        WindowPreference("a", 2, P.WORKS),
        WindowPreference("b", 2, P.NO),
        WindowPreference("b", 3, P.MAYBE),
        WindowPreference("c", 4, P.WORKS),
    ]

    ranked = rank_window_proposals(windows, prefs)

    # window 2: 3 - 2 = 1; windows 1 and 3 tie at 1 too and keep their order
    assert [s.window.id for s in ranked] == [1, 2, 3]
    assert [s.score for s in ranked] == [1, 1, 1]
    assert ranked[1].counts.works == 1
    assert ranked[1].counts.no == 1


def test_archive_is_leader_only():
    trip = _trip(window_proposals=(_window(1), _window(2)))

    with pytest.raises(SchedulingConflict) as exc:
        archive_window_proposals(trip, actor_id="alice", window_ids=[1])
    assert exc.value.code == "LEADER_ONLY"

    windows = archive_window_proposals(trip, actor_id="leader", window_ids=[1])
    assert [w.archived for w in windows] == [True, False]
