"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for places, user submissions, and the
per-place aggregate cache.
"""

import uuid
from datetime import datetime
from pathlib import Path
from sqlalchemy import (
    create_engine,
    Column,
    String,
    Text,
    Float,
    Integer,
    DateTime,
    JSON,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class Place(Base):
    """An approved place."""

    __tablename__ = "places"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    address = Column(String)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    phone = Column(String)
    website = Column(String)
    photos = Column(JSON, nullable=False, default=list)
    hours = Column(JSON)
    rating = Column(Float)
    review_count = Column(Integer)
    first_discovered_at = Column(DateTime, nullable=False, default=datetime.now)
    last_synced_at = Column(DateTime, nullable=False, default=datetime.now)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (Index("idx_places_lat_lng", "latitude", "longitude"),)


class PlaceSubmission(Base):
    """A user-submitted place awaiting (or done with) review."""

    __tablename__ = "place_submissions"

    id = Column(String, primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    source_link = Column(String, nullable=False)
    location = Column(String, nullable=False)  # POINT(lng lat) or hex EWKB
    submitted_by = Column(String)
    status = Column(String, nullable=False, default="pending")  # pending, approved, rejected
    reviewed_at = Column(DateTime)
    review_notes = Column(Text)
    approved_place_id = Column(String, ForeignKey("places.id", ondelete="SET NULL"))
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index("idx_place_submissions_status", "status"),
        Index("idx_place_submissions_created_at", "created_at"),
    )


class PlaceStat(Base):
    """Cached per-place aggregates, rebuilt after approvals."""

    __tablename__ = "place_stats"

    place_id = Column(String, ForeignKey("places.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String, nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    submission_count = Column(Integer, nullable=False, default=0)
    refreshed_at = Column(DateTime, nullable=False, default=datetime.now)


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = create_engine(f"sqlite:///{db_path}")
    Session = sessionmaker(bind=engine)
    return Session()
