# datefunnel/models/trip.py
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from datefunnel.models.base import Base
from datefunnel.scheduling.types import TripStatus, TripType


class TravelerStatus:
    ACTIVE = "active"
    LEFT = "left"


class Trip(Base):
    """
    A group outing and its scheduling record.

    The single active date proposal lives on the trip row itself
    (proposed_* columns); consensus windows are never stored.
    """

    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String(255), nullable=False)

    # Leader (trip creator)
    created_by = Column(String, nullable=False, index=True)

    type = Column(String(32), nullable=False, default=TripType.COLLABORATIVE.value)
    status = Column(String(32), nullable=False, default=TripStatus.PROPOSED.value)

    # Candidate date range participants pick from
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    duration_days = Column(Integer, nullable=False, default=3)

    locked_start_date = Column(Date, nullable=True)
    locked_end_date = Column(Date, nullable=True)
    dates_locked = Column(Boolean, nullable=False, default=False)

    proposed_start_date = Column(Date, nullable=True)
    proposed_end_date = Column(Date, nullable=True)
    proposed_by = Column(String, nullable=True)
    proposed_at = Column(DateTime, nullable=True)
    proposal_note = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    travelers = relationship(
        "TripTraveler",
        backref="trip",
        cascade="all, delete-orphan",
    )


class TripTraveler(Base):
    """Roster entry; only `active` travelers count toward thresholds."""

    __tablename__ = "trip_travelers"
    __table_args__ = (UniqueConstraint("trip_id", "user_id", name="uq_trip_traveler"),)

    id = Column(Integer, primary_key=True, index=True)

    trip_id = Column(
        Integer,
        ForeignKey("trips.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String, nullable=False, index=True)

    status = Column(String(32), nullable=False, default=TravelerStatus.ACTIVE)

    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)
