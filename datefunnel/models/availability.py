# datefunnel/models/availability.py
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String

from datefunnel.models.base import Base


class AvailabilityKind:
    BROAD = "broad"
    WEEKLY = "weekly"
    DAY = "day"


class AvailabilityEntry(Base):
    """
    One item of a participant's availability submission.

    A submission like "free all of June, but not the 2nd week, and the
    14th is a maybe" turns into 3 rows: broad, weekly, day. All rows for a
    (trip, user) are replaced together on every new submission.
    """

    __tablename__ = "availability_entries"

    id = Column(Integer, primary_key=True, index=True)

    trip_id = Column(
        Integer,
        ForeignKey("trips.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    user_id = Column(String, index=True, nullable=False)

    kind = Column(String(16), nullable=False)
    status = Column(String(16), nullable=False)

    # kind == day
    day = Column(Date, nullable=True)
    # kind == weekly
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    # Submission order, so later weekly blocks keep winning on overlap
    position = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
