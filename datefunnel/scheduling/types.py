# datefunnel/scheduling/types.py
import enum
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple, Union

from datefunnel.scheduling.errors import SchedulingValidationError


class TripType(str, enum.Enum):
    COLLABORATIVE = "collaborative"
    HOSTED = "hosted"


class TripStatus(str, enum.Enum):
    PROPOSED = "proposed"
    SCHEDULING = "scheduling"
    VOTING = "voting"
    LOCKED = "locked"
    COMPLETED = "completed"
    CANCELED = "canceled"


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "available"
    MAYBE = "maybe"
    UNAVAILABLE = "unavailable"


class WindowPreferenceType(str, enum.Enum):
    WORKS = "WORKS"
    MAYBE = "MAYBE"
    NO = "NO"


class DateReactionType(str, enum.Enum):
    WORKS = "WORKS"
    CAVEAT = "CAVEAT"  # can attend, with concerns
    CANT = "CANT"


class SchedulingFunnelState(str, enum.Enum):
    HOSTED_LOCKED = "HOSTED_LOCKED"
    NO_DATES = "NO_DATES"
    WINDOWS_OPEN = "WINDOWS_OPEN"
    DATE_PROPOSED = "DATE_PROPOSED"
    READY_TO_LOCK = "READY_TO_LOCK"
    DATES_LOCKED = "DATES_LOCKED"


# ---------- Availability input ----------


@dataclass(frozen=True)
class WeeklyBlock:
    start_date: date
    end_date: date
    status: AvailabilityStatus


@dataclass(frozen=True)
class DayAvailability:
    day: date
    status: AvailabilityStatus


@dataclass(frozen=True)
class AvailabilitySubmission:
    """
    One participant's live availability for a trip.

    Any combination of the three channels may be set; a new submission
    replaces the previous one for the same user entirely.
    """

    user_id: str
    broad_status: Optional[AvailabilityStatus] = None
    weekly_blocks: Tuple[WeeklyBlock, ...] = ()
    days: Tuple[DayAvailability, ...] = ()

    def is_empty(self) -> bool:
        return self.broad_status is None and not self.weekly_blocks and not self.days


# ---------- Window proposals ----------


@dataclass(frozen=True)
class WindowProposal:
    id: Optional[int]  # None until persisted
    user_id: str
    description: str
    created_at: datetime
    start_hint: Optional[date] = None
    end_hint: Optional[date] = None
    archived: bool = False


@dataclass(frozen=True)
class WindowPreference:
    user_id: str
    window_id: int
    preference: WindowPreferenceType
    note: Optional[str] = None


# ---------- Concrete date proposal ----------


@dataclass(frozen=True)
class DateProposal:
    start_date: date
    end_date: date
    proposed_by: str
    proposed_at: datetime
    note: Optional[str] = None


@dataclass(frozen=True)
class DateReaction:
    user_id: str
    reaction_type: DateReactionType
    note: Optional[str] = None


# ---------- Consensus output ----------


@dataclass(frozen=True)
class CandidateWindow:
    option_key: str
    start_date: date
    end_date: date
    score: float
    total_score: float
    coverage: float

    def to_dict(self):
        return {
            "optionKey": self.option_key,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "score": self.score,
            "totalScore": self.total_score,
            "coverage": self.coverage,
        }


# ---------- Trip lifecycle (tagged union) ----------


@dataclass(frozen=True)
class Proposed:
    status = TripStatus.PROPOSED


@dataclass(frozen=True)
class Scheduling:
    status = TripStatus.SCHEDULING


@dataclass(frozen=True)
class Voting:
    status = TripStatus.VOTING


@dataclass(frozen=True)
class Locked:
    start_date: date
    end_date: date
    status = TripStatus.LOCKED

    def __post_init__(self):
        if self.start_date > self.end_date:
            raise SchedulingValidationError(
                "lockedStartDate must be <= lockedEndDate"
            )


@dataclass(frozen=True)
class Completed:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status = TripStatus.COMPLETED


@dataclass(frozen=True)
class Canceled:
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status = TripStatus.CANCELED


TripStage = Union[Proposed, Scheduling, Voting, Locked, Completed, Canceled]

_OPEN_STAGES = {
    TripStatus.PROPOSED: Proposed,
    TripStatus.SCHEDULING: Scheduling,
    TripStatus.VOTING: Voting,
}


def stage_from_record(
    status,
    locked_start: Optional[date] = None,
    locked_end: Optional[date] = None,
    dates_locked: bool = False,
) -> TripStage:
    """
    Build the lifecycle stage from a loosely-shaped stored trip record.

    Either the explicit `dates_locked` flag or `status == locked` means the
    dates are locked, and a locked trip must carry both locked dates.
    Completed and canceled trips keep whatever locked dates they had.
    """
    status = TripStatus(status) if status is not None else TripStatus.SCHEDULING

    if status == TripStatus.CANCELED:
        return Canceled(start_date=locked_start, end_date=locked_end)
    if status == TripStatus.COMPLETED:
        return Completed(start_date=locked_start, end_date=locked_end)

    if dates_locked or status == TripStatus.LOCKED:
        if locked_start is None or locked_end is None:
            raise SchedulingValidationError(
                "A locked trip must have both lockedStartDate and lockedEndDate"
            )
        return Locked(start_date=locked_start, end_date=locked_end)

    return _OPEN_STAGES[status]()


@dataclass(frozen=True)
class TripSnapshot:
    """
    Everything the engine needs to know about one trip, read in one go by
    the caller. Pure data; the engine never mutates it in place.
    """

    id: int
    type: TripType
    stage: TripStage
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration_days: int = 3
    created_by: Optional[str] = None
    date_proposal: Optional[DateProposal] = None
    window_proposals: Tuple[WindowProposal, ...] = ()
    window_preferences: Tuple[WindowPreference, ...] = ()
    date_reactions: Tuple[DateReaction, ...] = ()

    @property
    def status(self) -> TripStatus:
        return self.stage.status

    @property
    def is_hosted(self) -> bool:
        return self.type == TripType.HOSTED

    @property
    def dates_locked(self) -> bool:
        if isinstance(self.stage, Locked):
            return True
        # a trip locked before it ended or was canceled stays locked
        return (
            isinstance(self.stage, (Completed, Canceled))
            and self.stage.start_date is not None
            and self.stage.end_date is not None
        )

    def is_leader(self, user_id: Optional[str]) -> bool:
        return user_id is not None and user_id == self.created_by
