from typing import Optional

from .constants import (
    DUPLICATE_CHECK_RADIUS_METERS,
    DUPLICATE_NAME_THRESHOLD,
    DUPLICATE_CANDIDATE_LIMIT,
)
from .logger import get_logger
from .models import Coordinate, ExistingRecord
from .normalize import name_similarity
from .storage import PersistenceError

logger = get_logger()


def find_existing_place(store, name: str, location: Coordinate) -> Optional[ExistingRecord]:
    """
    Existing place near location whose name is similar enough to be the same.

    Returns the first candidate, in the store's order, that clears the
    threshold. Not necessarily the best-scoring one.
    """
    try:
        candidates = store.nearby_places(
            location,
            radius_meters=DUPLICATE_CHECK_RADIUS_METERS,
            limit=DUPLICATE_CANDIDATE_LIMIT,
        )
    except PersistenceError as e:
        logger.error("Error checking for existing places", error=str(e))
        return None

    for candidate in candidates:
        score = name_similarity(name, candidate.name)
        if score >= DUPLICATE_NAME_THRESHOLD:
            logger.debug("Duplicate candidate matched", place_id=candidate.id, score=score)
            return candidate

    return None
