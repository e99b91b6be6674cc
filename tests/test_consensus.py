# tests/test_consensus.py
from datetime import date

import pytest

from datefunnel.scheduling.consensus import score_consensus_windows
from datefunnel.scheduling.dates import candidate_days, ranges_overlap
from datefunnel.scheduling.errors import SchedulingValidationError
from datefunnel.scheduling.normalizer import normalize_all
from datefunnel.scheduling.types import (
    AvailabilityStatus as S,
    AvailabilitySubmission,
    DayAvailability,
)


def _two_travelers():
    days = candidate_days("2025-03-01", "2025-03-10")
    submissions = [
        AvailabilitySubmission(user_id="alice", broad_status=S.AVAILABLE),
        AvailabilitySubmission(
            user_id="bob",
            broad_status=S.AVAILABLE,
            days=tuple(
                DayAvailability(date(2025, 3, d), S.UNAVAILABLE) for d in (1, 2, 3)
            ),
        ),
    ]
    return normalize_all(submissions, days), days


def test_best_windows_are_picked_without_overlap():
    availability, days = _two_travelers()

    windows = score_consensus_windows(availability, days, 3)

    assert [(w.start_date, w.end_date) for w in windows] == [
        (date(2025, 3, 4), date(2025, 3, 6)),
        (date(2025, 3, 7), date(2025, 3, 9)),
        (date(2025, 3, 1), date(2025, 3, 3)),
    ]
    assert windows[0].score == 1.0
    assert windows[0].total_score == 18.0
    assert windows[0].option_key == "2025-03-04_2025-03-06"
    # alice 3 days * 3, bob 3 days * -2
    assert windows[2].total_score == 3.0
    assert windows[2].score == pytest.approx(3 / 18)
    assert all(w.coverage == 1.0 for w in windows)

    for i, a in enumerate(windows):
        for b in windows[i + 1:]:
            assert not ranges_overlap(a.start_date, a.end_date, b.start_date, b.end_date)


def test_scoring_is_deterministic():
    availability, days = _two_travelers()

    first = score_consensus_windows(availability, days, 3)
    second = score_consensus_windows(availability, days, 3)

    assert first == second


def test_falls_back_to_a_disjoint_pair():
    # The best window overlaps every other one, so greedy alone would
    # only return one window.
    days = candidate_days("2025-03-01", "2025-03-06")
    availability = normalize_all(
        [
            AvailabilitySubmission(
                user_id="alice",
                days=tuple(DayAvailability(date(2025, 3, d), S.AVAILABLE) for d in (2, 3, 4)),
            )
        ],
        days,
    )

    windows = score_consensus_windows(availability, days, 3)

    assert [(w.start_date.day, w.end_date.day) for w in windows] == [(1, 3), (4, 6)]
    assert windows[0].score == pytest.approx(6 / 9)
    assert windows[1].score == pytest.approx(3 / 9)
    assert windows[1].coverage == pytest.approx(1 / 3)


def test_no_availability_returns_empty():
    days = candidate_days("2025-03-01", "2025-03-10")
    assert score_consensus_windows({}, days, 3) == []


def test_range_shorter_than_duration_returns_empty():
    days = candidate_days("2025-03-01", "2025-03-02")
    availability = normalize_all(
        [AvailabilitySubmission(user_id="alice", broad_status=S.AVAILABLE)], days
    )
    assert score_consensus_windows(availability, days, 3) == []


def test_non_positive_duration_rejected():
    availability, days = _two_travelers()
    with pytest.raises(SchedulingValidationError):
        score_consensus_windows(availability, days, 0)


def test_negative_totals_clamp_to_zero():
    days = candidate_days("2025-03-01", "2025-03-03")
    availability = normalize_all(
        [AvailabilitySubmission(user_id="alice", broad_status=S.UNAVAILABLE)], days
    )

    windows = score_consensus_windows(availability, days, 3)

    assert len(windows) == 1
    assert windows[0].score == 0.0
    assert windows[0].total_score == -6.0


def test_small_group_broad_availability_scenario():
    days = candidate_days("2026-06-01", "2026-06-30")
    # 6 travelers, 4 of them submit
    availability = normalize_all(
        [
            AvailabilitySubmission(user_id=f"u{i}", broad_status=S.AVAILABLE)
            for i in range(4)
        ],
        days,
    )

    windows = score_consensus_windows(availability, days, 3)

    assert 2 <= len(windows) <= 3
    assert any(w.coverage >= 0.5 for w in windows)
    best = windows[0]
    assert (best.end_date - best.start_date).days == 2
    assert best.start_date >= date(2026, 6, 1)
    assert best.end_date <= date(2026, 6, 30)
    assert best.score == 1.0
