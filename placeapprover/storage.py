"""
SQLite-backed store for submissions and places.

Implements the collaborator interface the approver depends on:
fetch_pending, nearby_places, create_place, update_submission_status and
refresh_aggregates. Repositories hold no approval logic.
"""

import math
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from .constants import STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED
from .database import Place, PlaceSubmission, PlaceStat, init_database, get_session
from .geometry import format_point, haversine_meters
from .logger import get_logger
from .models import Coordinate, ExistingRecord, ExtractedRecord, Submission
from .schema import validate_submission

logger = get_logger()

TERMINAL_STATUSES = {STATUS_APPROVED, STATUS_REJECTED}
METERS_PER_DEGREE_LAT = 111_320


class PersistenceError(Exception):
    """Raised when a read or write against the store fails."""
    pass


def _to_submission(row: PlaceSubmission) -> Submission:
    return Submission(
        id=row.id,
        name=row.name,
        source_link=row.source_link,
        raw_location=row.location,
        submitted_by=row.submitted_by,
        status=row.status,
        review_notes=row.review_notes,
        linked_record_id=row.approved_place_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        reviewed_at=row.reviewed_at,
    )


class PlaceStore:
    """Persistence for submissions, places and the place_stats cache."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        init_database(self.db_path)

    @contextmanager
    def _session(self, action: str):
        session = get_session(self.db_path)
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Store operation failed: {action}", error=str(e))
            raise PersistenceError(f"Failed to {action}: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # Submissions

    def add_submission(
        self,
        name: str,
        source_link: str,
        location: Coordinate,
        submitted_by: Optional[str] = None,
    ) -> str:
        """Validate and insert a new pending submission. Returns its id."""
        errors = validate_submission({
            "name": name,
            "source_link": source_link,
            "lat": location.lat,
            "lng": location.lng,
        })
        if errors:
            raise ValueError("; ".join(errors))

        with self._session("add submission") as session:
            row = PlaceSubmission(
                name=name.strip(),
                source_link=source_link.strip(),
                location=format_point(location),
                submitted_by=submitted_by,
                status=STATUS_PENDING,
            )
            session.add(row)
            session.flush()
            return row.id

    def fetch_pending(self, limit: int) -> List[Submission]:
        """Oldest pending submissions first."""
        with self._session("fetch pending submissions") as session:
            rows = (
                session.query(PlaceSubmission)
                .filter(PlaceSubmission.status == STATUS_PENDING)
                .order_by(PlaceSubmission.created_at.asc())
                .limit(limit)
                .all()
            )
            return [_to_submission(r) for r in rows]

    def get_submission(self, submission_id: str) -> Optional[Submission]:
        with self._session("get submission") as session:
            row = session.get(PlaceSubmission, submission_id)
            return _to_submission(row) if row else None

    def list_submissions(self, status: Optional[str] = None) -> List[Submission]:
        with self._session("list submissions") as session:
            query = session.query(PlaceSubmission)
            if status:
                query = query.filter(PlaceSubmission.status == status)
            rows = query.order_by(PlaceSubmission.created_at.asc()).all()
            return [_to_submission(r) for r in rows]

    def update_submission_status(
        self,
        submission_id: str,
        status: str,
        notes: str,
        linked_record_id: Optional[str] = None,
    ) -> None:
        """Move a pending submission to a terminal status and stamp reviewed_at."""
        if status not in TERMINAL_STATUSES:
            raise PersistenceError(f"Not a terminal status: {status!r}")

        with self._session("update submission status") as session:
            row = session.get(PlaceSubmission, submission_id)
            if row is None:
                raise PersistenceError(f"Submission not found: {submission_id}")
            if row.status != STATUS_PENDING:
                raise PersistenceError(
                    f"Submission {submission_id} is already {row.status}"
                )
            row.status = status
            row.review_notes = notes
            row.reviewed_at = datetime.now()
            if linked_record_id:
                row.approved_place_id = linked_record_id

    # Places

    def create_place(self, extracted: ExtractedRecord) -> str:
        """Insert a place from extracted data. Returns the new id."""
        now = datetime.now()
        with self._session("create place") as session:
            place = Place(
                name=extracted.name,
                address=extracted.address,
                latitude=extracted.location.lat,
                longitude=extracted.location.lng,
                phone=extracted.phone or None,
                website=extracted.website or None,
                photos=list(extracted.photos),
                hours=extracted.hours or None,
                rating=extracted.rating,
                review_count=extracted.review_count,
                first_discovered_at=now,
                last_synced_at=now,
            )
            session.add(place)
            session.flush()
            logger.debug("Created place", place_id=place.id, name=place.name)
            return place.id

    def nearby_places(
        self,
        center: Coordinate,
        radius_meters: float,
        limit: int = 20,
    ) -> List[ExistingRecord]:
        """Places within radius_meters of center, nearest first."""
        d_lat = radius_meters / METERS_PER_DEGREE_LAT
        cos_lat = math.cos(math.radians(center.lat))
        d_lng = 180.0 if cos_lat < 1e-6 else radius_meters / (METERS_PER_DEGREE_LAT * cos_lat)

        with self._session("query nearby places") as session:
            rows = (
                session.query(Place)
                .filter(Place.latitude.between(center.lat - d_lat, center.lat + d_lat))
                .filter(Place.longitude.between(center.lng - d_lng, center.lng + d_lng))
                .all()
            )
            candidates = []
            for row in rows:
                loc = Coordinate(lat=row.latitude, lng=row.longitude)
                distance = haversine_meters(center, loc)
                if distance <= radius_meters:
                    candidates.append((distance, ExistingRecord(
                        id=row.id, name=row.name, location=loc, address=row.address,
                    )))

        candidates.sort(key=lambda c: c[0])
        return [record for _, record in candidates[:limit]]

    def refresh_aggregates(self) -> int:
        """Rebuild place_stats. Returns the number of rows written."""
        with self._session("refresh place stats") as session:
            counts = dict(
                session.query(
                    PlaceSubmission.approved_place_id,
                    func.count(PlaceSubmission.id),
                )
                .filter(PlaceSubmission.approved_place_id.isnot(None))
                .group_by(PlaceSubmission.approved_place_id)
                .all()
            )
            session.query(PlaceStat).delete()
            now = datetime.now()
            places = session.query(Place).all()
            for place in places:
                session.add(PlaceStat(
                    place_id=place.id,
                    name=place.name,
                    latitude=place.latitude,
                    longitude=place.longitude,
                    submission_count=counts.get(place.id, 0),
                    refreshed_at=now,
                ))
            return len(places)
