# datefunnel/db/session.py
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from datefunnel.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

# For SQLite, `check_same_thread=False` is needed for FastAPI dev usage
engine = create_engine(
    settings.DATABASE_URL,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)

if _is_sqlite:

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
        # roster / window / reaction rows cascade with their trip
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    logger.debug("SQLite foreign key enforcement enabled")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
