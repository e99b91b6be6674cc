# datefunnel/models/date_window.py
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


class DateWindow(Base):
    """
    A participant's free-text date suggestion ("early March").

    Never deleted: the leader's compress action only sets `archived`.
    """

    __tablename__ = "date_windows"

    id = Column(Integer, primary_key=True, index=True)

    trip_id = Column(
        Integer,
        ForeignKey("trips.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    user_id = Column(String, index=True, nullable=False)

    description = Column(String, nullable=False)
    start_hint = Column(Date, nullable=True)
    end_hint = Column(Date, nullable=True)
    # "exact" | "approx" when the hints came from parsing the description
    precision = Column(String(16), nullable=True)

    archived = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    preferences = relationship(
        "DateWindowPreference",
        backref="window",
        cascade="all, delete-orphan",
    )


class DateWindowPreference(Base):
    __tablename__ = "date_window_preferences"
    __table_args__ = (UniqueConstraint("window_id", "user_id", name="uq_window_pref_user"),)

    id = Column(Integer, primary_key=True, index=True)

    trip_id = Column(
        Integer,
        ForeignKey("trips.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    window_id = Column(
        Integer,
        ForeignKey("date_windows.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    user_id = Column(String, index=True, nullable=False)

    # WORKS | MAYBE | NO
    preference = Column(String(16), nullable=False)
    note = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
