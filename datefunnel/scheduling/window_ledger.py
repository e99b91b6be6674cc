# datefunnel/scheduling/window_ledger.py
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

from datefunnel.scheduling import guards
from datefunnel.scheduling.errors import SchedulingConflict, SchedulingValidationError
from datefunnel.scheduling.types import (
    TripSnapshot,
    WindowPreference,
    WindowPreferenceType,
    WindowProposal,
)
from datefunnel.scheduling.window_overlap import (
    DEFAULT_SIMILARITY_THRESHOLD,
    SimilarWindow,
    find_similar_windows,
)
from datefunnel.scheduling.window_text import MAX_WINDOW_DAYS, parse_window_text

MAX_WINDOWS_PER_USER = 2

PREFERENCE_WEIGHTS = {
    WindowPreferenceType.WORKS: 3,
    WindowPreferenceType.MAYBE: 1,
    WindowPreferenceType.NO: -2,
}


@dataclass(frozen=True)
class PreferenceCounts:
    works: int = 0
    maybe: int = 0
    no: int = 0

    @property
    def score(self) -> int:
        return (
            self.works * PREFERENCE_WEIGHTS[WindowPreferenceType.WORKS]
            + self.maybe * PREFERENCE_WEIGHTS[WindowPreferenceType.MAYBE]
            + self.no * PREFERENCE_WEIGHTS[WindowPreferenceType.NO]
        )


@dataclass(frozen=True)
class ScoredWindowProposal:
    window: WindowProposal
    counts: PreferenceCounts
    score: int


@dataclass(frozen=True)
class WindowSubmission:
    proposal: WindowProposal
    similar: List[SimilarWindow]
    precision: Optional[str] = None


def active_window_proposals(proposals: Iterable[WindowProposal]) -> List[WindowProposal]:
    return [p for p in proposals if not p.archived]


def aggregate_preferences(
    window_id: int,
    preferences: Iterable[WindowPreference],
) -> PreferenceCounts:
    works = maybe = no = 0
    for pref in preferences:
        if pref.window_id != window_id:
            continue
        if pref.preference == WindowPreferenceType.WORKS:
            works += 1
        elif pref.preference == WindowPreferenceType.MAYBE:
            maybe += 1
        elif pref.preference == WindowPreferenceType.NO:
            no += 1
    return PreferenceCounts(works=works, maybe=maybe, no=no)


def rank_window_proposals(
    proposals: Iterable[WindowProposal],
    preferences: Iterable[WindowPreference],
) -> List[ScoredWindowProposal]:
    """
    Score = works * 3 + maybe * 1 + no * (-2), active proposals only,
    highest first. sorted() is stable, so ties keep submission order.
    """
    preferences = list(preferences)
    scored = []
    for window in active_window_proposals(proposals):
        counts = aggregate_preferences(window.id, preferences)
        scored.append(ScoredWindowProposal(window=window, counts=counts, score=counts.score))
    return sorted(scored, key=lambda s: s.score, reverse=True)


def _resolve_hints(
    trip: TripSnapshot,
    description: str,
    start_hint: Optional[date],
    end_hint: Optional[date],
    today: Optional[date],
    max_window_days: int,
) -> Tuple[Optional[date], Optional[date], Optional[str]]:
    if (start_hint is None) != (end_hint is None):
        raise SchedulingValidationError("startHint and endHint must be given together")

    if start_hint is not None:
        if start_hint > end_hint:
            raise SchedulingValidationError(
                f"startHint ({start_hint.isoformat()}) must be <= endHint ({end_hint.isoformat()})"
            )
        return start_hint, end_hint, "exact"

    try:
        parsed = parse_window_text(
            description,
            start_bound=trip.start_date,
            today=today,
            max_window_days=max_window_days,
        )
    except SchedulingValidationError:
        # Free text stays acceptable as a suggestion without a concrete range
        return None, None, None
    return parsed.start_date, parsed.end_date, parsed.precision


def add_window_proposal(
    trip: TripSnapshot,
    *,
    user_id: str,
    description: str,
    now: datetime,
    start_hint: Optional[date] = None,
    end_hint: Optional[date] = None,
    today: Optional[date] = None,
    max_windows_per_user: int = MAX_WINDOWS_PER_USER,
    max_window_days: int = MAX_WINDOW_DAYS,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> WindowSubmission:
    """
    Validate and build a new window proposal for `user_id`.

    Behavior:
    - rejected once a concrete date proposal exists, or when the trip is
      locked / hosted / canceled
    - explicit hints win; otherwise the description is parsed for a range
    - hinted ranges must sit inside the trip's candidate range
    - each author may hold at most `max_windows_per_user` active windows
    - overlapping existing windows are reported back, never rejected

    The returned proposal has id=None; the caller assigns one on save.
    """
    guards.ensure_action_allowed(trip, guards.PROPOSE_WINDOW, user_id)

    description = (description or "").strip()
    if not description:
        raise SchedulingValidationError("A window needs a description")

    active = active_window_proposals(trip.window_proposals)
    own = [p for p in active if p.user_id == user_id]
    if len(own) >= max_windows_per_user:
        raise SchedulingConflict(
            f"You can suggest up to {max_windows_per_user} windows",
            code="WINDOW_LIMIT",
        )

    start, end, precision = _resolve_hints(
        trip, description, start_hint, end_hint, today, max_window_days
    )

    if start is not None and trip.start_date is not None and trip.end_date is not None:
        if start < trip.start_date or end > trip.end_date:
            raise SchedulingValidationError(
                f"Window ({start.isoformat()} to {end.isoformat()}) must be within trip range "
                f"({trip.start_date.isoformat()} to {trip.end_date.isoformat()})",
                code="OUT_OF_RANGE",
            )

    proposal = WindowProposal(
        id=None,
        user_id=user_id,
        description=description,
        created_at=now,
        start_hint=start,
        end_hint=end,
    )
    similar = (
        find_similar_windows(start, end, active, threshold=similarity_threshold)
        if start is not None
        else []
    )
    return WindowSubmission(proposal=proposal, similar=similar, precision=precision)


def _find_window(trip: TripSnapshot, window_id: int) -> WindowProposal:
    for window in trip.window_proposals:
        if window.id == window_id:
            return window
    raise SchedulingValidationError(f"Unknown window {window_id}", code="UNKNOWN_WINDOW")


def record_preference(
    trip: TripSnapshot,
    *,
    user_id: str,
    window_id: int,
    preference: WindowPreferenceType,
    note: Optional[str] = None,
) -> Tuple[WindowPreference, ...]:
    """
    Upsert the user's stance on one window. Returns the full new preference
    set; at most one entry per (user, window), the latest wins.
    """
    guards.ensure_action_allowed(trip, guards.SET_WINDOW_PREFERENCE, user_id)

    window = _find_window(trip, window_id)
    if window.archived:
        raise SchedulingConflict("This window has been archived", code="WINDOW_ARCHIVED")

    new_pref = WindowPreference(
        user_id=user_id,
        window_id=window_id,
        preference=WindowPreferenceType(preference),
        note=note,
    )
    kept = tuple(
        p for p in trip.window_preferences
        if not (p.user_id == user_id and p.window_id == window_id)
    )
    return kept + (new_pref,)


def archive_window_proposals(
    trip: TripSnapshot,
    *,
    actor_id: str,
    window_ids: Iterable[int],
) -> Tuple[WindowProposal, ...]:
    """
    Leader "compress": archive the given windows so they leave the ranking.
    Nothing is deleted; preferences on archived windows are kept.
    """
    guards.ensure_action_allowed(trip, guards.COMPRESS_WINDOWS, actor_id)

    ids = set(window_ids)
    if not ids:
        raise SchedulingValidationError("Pick at least one window to archive")
    for window_id in ids:
        _find_window(trip, window_id)

    return tuple(
        replace(w, archived=True) if w.id in ids else w
        for w in trip.window_proposals
    )


def get_user_window_preference(
    trip: TripSnapshot,
    user_id: str,
    window_id: int,
) -> Optional[WindowPreference]:
    for pref in trip.window_preferences:
        if pref.user_id == user_id and pref.window_id == window_id:
            return pref
    return None
