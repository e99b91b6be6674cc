# datefunnel/scheduling/consensus.py
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional, Sequence

from datefunnel.scheduling.dates import ranges_overlap
from datefunnel.scheduling.errors import SchedulingValidationError
from datefunnel.scheduling.normalizer import NormalizedAvailability
from datefunnel.scheduling.types import AvailabilityStatus, CandidateWindow

DAY_WEIGHTS: Dict[Optional[AvailabilityStatus], int] = {
    AvailabilityStatus.AVAILABLE: 3,
    AvailabilityStatus.MAYBE: 1,
    AvailabilityStatus.UNAVAILABLE: -2,
    None: 0,
}
MAX_DAY_WEIGHT = DAY_WEIGHTS[AvailabilityStatus.AVAILABLE]

DEFAULT_MAX_WINDOWS = 3


@dataclass
class _ScoredRange:
    start_date: date
    end_date: date
    total_score: float
    score: float
    coverage: float

    def rank_key(self):
        # score desc, then raw score desc, then earliest start
        return (-self.score, -self.total_score, self.start_date)

    def overlaps(self, other: "_ScoredRange") -> bool:
        return ranges_overlap(self.start_date, self.end_date, other.start_date, other.end_date)

    def to_candidate(self) -> CandidateWindow:
        start = self.start_date.isoformat()
        end = self.end_date.isoformat()
        return CandidateWindow(
            option_key=f"{start}_{end}",
            start_date=self.start_date,
            end_date=self.end_date,
            score=self.score,
            total_score=self.total_score,
            coverage=self.coverage,
        )


def _score_range(
    window_days: Sequence[date],
    availability: Mapping[str, NormalizedAvailability],
) -> _ScoredRange:
    """
    Score = sum over window days and participants of the day weight
            (available +3, maybe +1, unavailable -2, no data 0)

    Coverage = share of window days where at least one participant
               has any record.
    """
    total = 0
    days_with_data = 0
    for day in window_days:
        has_data = False
        for day_map in availability.values():
            status = day_map.get(day)
            total += DAY_WEIGHTS[status]
            if status is not None:
                has_data = True
        if has_data:
            days_with_data += 1

    duration = len(window_days)
    max_score = MAX_DAY_WEIGHT * duration * len(availability)
    score = min(max(total / max_score, 0.0), 1.0) if max_score else 0.0

    return _ScoredRange(
        start_date=window_days[0],
        end_date=window_days[-1],
        total_score=float(total),
        score=score,
        coverage=days_with_data / duration,
    )


def _select_non_overlapping(
    ranked: List[_ScoredRange],
    max_windows: int,
) -> List[_ScoredRange]:
    """
    Greedy pick in rank order, skipping anything that shares a day with an
    already selected range.

    If greedy stops at one range but two disjoint ranges exist elsewhere,
    restart from the best-ranked range that has a disjoint partner so at
    least two windows come back.
    """
    selected: List[_ScoredRange] = []
    for candidate in ranked:
        if len(selected) >= max_windows:
            break
        if not any(candidate.overlaps(s) for s in selected):
            selected.append(candidate)

    if len(selected) >= 2 or max_windows < 2:
        return selected

    for i, first in enumerate(ranked):
        partner = next(
            (other for other in ranked[i + 1:] if not first.overlaps(other)),
            None,
        )
        if partner is None:
            continue
        selected = [first, partner]
        for candidate in ranked:
            if len(selected) >= max_windows:
                break
            if not any(candidate.overlaps(s) for s in selected):
                selected.append(candidate)
        return sorted(selected, key=_ScoredRange.rank_key)

    return selected


def score_consensus_windows(
    availability: Mapping[str, NormalizedAvailability],
    trip_days: Sequence[date],
    duration_days: int,
    max_windows: int = DEFAULT_MAX_WINDOWS,
) -> List[CandidateWindow]:
    """
    Rank every `duration_days`-long window inside the trip range and return
    the top 2-3 that do not share a day.

    Given:
      - normalized per-day availability for each participant who submitted
      - the trip's candidate days (contiguous, ascending)

    Returns:
      - CandidateWindow list sorted by score desc (ties: earlier start)
      - [] when nobody submitted or the range is shorter than the duration

    Nothing here is stored; callers recompute on every read.
    """
    if duration_days is None or duration_days <= 0:
        raise SchedulingValidationError("Trip duration must be a positive number of days")

    if not availability or len(trip_days) < duration_days:
        return []

    scored: List[_ScoredRange] = []
    for offset in range(len(trip_days) - duration_days + 1):
        window_days = trip_days[offset:offset + duration_days]
        if window_days[-1] - window_days[0] != timedelta(days=duration_days - 1):
            raise SchedulingValidationError("Trip candidate days must be contiguous")
        scored.append(_score_range(window_days, availability))

    ranked = sorted(scored, key=_ScoredRange.rank_key)
    return [s.to_candidate() for s in _select_non_overlapping(ranked, max_windows)]
