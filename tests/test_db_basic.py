# tests/test_db_basic.py
from datetime import date

from sqlalchemy import text
from sqlalchemy.orm import Session

from datefunnel.db.session import engine, SessionLocal
from datefunnel.models import Base, Trip, TripTraveler


def test_db_can_create_schema():
    # Ensure metadata can create tables
    Base.metadata.create_all(bind=engine)

    # Simple connectivity test
    with engine.connect() as conn:
        result = conn.execute(text("SELECT 1"))
        assert result.scalar() == 1


def test_create_and_read_trip_with_roster():
    Base.metadata.create_all(bind=engine)

    db: Session = SessionLocal()
    try:
        trip = Trip(
            title="Ski weekend",
            created_by="leader-db",
            start_date=date(2025, 2, 1),
            end_date=date(2025, 2, 28),
        )
        trip.travelers.append(TripTraveler(user_id="leader-db"))
        db.add(trip)
        db.commit()
        db.refresh(trip)

        assert trip.id is not None

        # fetch back; column defaults filled in
        fetched = db.query(Trip).filter_by(id=trip.id).first()
        assert fetched is not None
        assert fetched.status == "proposed"
        assert fetched.type == "collaborative"
        assert fetched.duration_days == 3
        assert fetched.dates_locked is False
        assert [t.user_id for t in fetched.travelers] == ["leader-db"]
        assert fetched.travelers[0].status == "active"
    finally:
        db.close()
