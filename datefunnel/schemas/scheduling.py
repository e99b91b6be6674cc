# datefunnel/schemas/scheduling.py
from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from datefunnel.scheduling.types import (
    AvailabilityStatus,
    DateReactionType,
    TripType,
    WindowPreferenceType,
)


class TripCreate(BaseModel):
    title: str
    created_by: str
    type: TripType = TripType.COLLABORATIVE
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration_days: int = 3
    locked_start_date: Optional[date] = None
    locked_end_date: Optional[date] = None

    @field_validator("duration_days")
    def validate_duration(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("duration_days must be positive")
        return v


class TravelerAdd(BaseModel):
    user_id: str


class ActorPayload(BaseModel):
    actor_id: str


class WeeklyBlockIn(BaseModel):
    start_date: date
    end_date: date
    status: AvailabilityStatus


class DayAvailabilityIn(BaseModel):
    day: date
    status: AvailabilityStatus


class AvailabilityPayload(BaseModel):
    """
    Any combination of the three channels; per-day overrides weekly,
    which overrides broad.
    """

    user_id: str
    broad_status: Optional[AvailabilityStatus] = None
    weekly_blocks: List[WeeklyBlockIn] = Field(default_factory=list)
    availabilities: List[DayAvailabilityIn] = Field(default_factory=list)


class WindowCreate(BaseModel):
    user_id: str
    description: str
    start_hint: Optional[date] = None
    end_hint: Optional[date] = None


class WindowPreferencePayload(BaseModel):
    user_id: str
    preference: WindowPreferenceType
    note: Optional[str] = None


class CompressPayload(BaseModel):
    actor_id: str
    window_ids: List[int]


class DateProposalCreate(BaseModel):
    actor_id: str
    start_date: date
    end_date: date
    note: Optional[str] = None
    leader_override: bool = False
    replace: bool = False


class DateReactionPayload(BaseModel):
    user_id: str
    reaction_type: DateReactionType
    note: Optional[str] = None


class LockPayload(BaseModel):
    actor_id: str
    leader_override: bool = False
