# datefunnel/models/date_reaction.py
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from datefunnel.models.base import Base


class DateProposalReaction(Base):
    """A traveler's reaction to the trip's current date proposal (one per user)."""

    __tablename__ = "date_proposal_reactions"
    __table_args__ = (UniqueConstraint("trip_id", "user_id", name="uq_reaction_trip_user"),)

    id = Column(Integer, primary_key=True, index=True)

    trip_id = Column(
        Integer,
        ForeignKey("trips.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    user_id = Column(String, index=True, nullable=False)

    # WORKS | CAVEAT | CANT
    reaction_type = Column(String(16), nullable=False)
    note = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
