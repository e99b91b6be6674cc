# datefunnel/scheduling/window_overlap.py
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List

from datefunnel.scheduling.dates import span_days
from datefunnel.scheduling.types import WindowProposal

DEFAULT_SIMILARITY_THRESHOLD = 0.6


@dataclass(frozen=True)
class SimilarWindow:
    window: WindowProposal
    score: float


def overlap_score(start_a: date, end_a: date, start_b: date, end_b: date) -> float:
    """
    overlapping days / min(length A, length B)

    0.0 = disjoint, 1.0 = one range fully contains the other.
    """
    intersect_start = max(start_a, start_b)
    intersect_end = min(end_a, end_b)
    if intersect_start > intersect_end:
        return 0.0

    overlap = span_days(intersect_start, intersect_end)
    return overlap / min(span_days(start_a, end_a), span_days(start_b, end_b))


def find_similar_windows(
    start_date: date,
    end_date: date,
    existing: Iterable[WindowProposal],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> List[SimilarWindow]:
    """
    Active windows whose hinted range overlaps [start_date, end_date] at
    least `threshold`, best match first. Windows without hints are skipped.
    """
    similar: List[SimilarWindow] = []
    for window in existing:
        if window.archived or window.start_hint is None or window.end_hint is None:
            continue
        score = overlap_score(start_date, end_date, window.start_hint, window.end_hint)
        if score >= threshold:
            similar.append(SimilarWindow(window=window, score=round(score, 2)))

    similar.sort(key=lambda s: s.score, reverse=True)
    return similar
