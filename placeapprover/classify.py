"""
Three-way verdict from name similarity and pin distance.

The clear-match band (>85%, <100m) and clear-mismatch band (<50% or >500m)
never overlap. Anything in between is borderline and goes to the
adjudicator.
"""

from .constants import (
    CLEAR_MATCH_NAME_THRESHOLD,
    CLEAR_MATCH_DISTANCE_METERS,
    CLEAR_MISMATCH_NAME_THRESHOLD,
    CLEAR_MISMATCH_DISTANCE_METERS,
    CLEAR_MATCH,
    CLEAR_MISMATCH,
    BORDERLINE,
)
from .geometry import haversine_meters
from .models import ExtractedRecord, ParsedSubmission, ValidationResult
from .normalize import name_similarity


def is_clear_match(name_score: float, distance_meters: float) -> bool:
    return (
        name_score > CLEAR_MATCH_NAME_THRESHOLD
        and distance_meters < CLEAR_MATCH_DISTANCE_METERS
    )


def is_clear_mismatch(name_score: float, distance_meters: float) -> bool:
    return (
        name_score < CLEAR_MISMATCH_NAME_THRESHOLD
        or distance_meters > CLEAR_MISMATCH_DISTANCE_METERS
    )


def classify_scores(name_score: float, distance_meters: float) -> str:
    if is_clear_match(name_score, distance_meters):
        return CLEAR_MATCH
    if is_clear_mismatch(name_score, distance_meters):
        return CLEAR_MISMATCH
    return BORDERLINE


def classify_submission(parsed: ParsedSubmission, extracted: ExtractedRecord) -> ValidationResult:
    """Score a submission against the extracted place and classify it."""
    score = name_similarity(parsed.name, extracted.name)
    distance = haversine_meters(parsed.location, extracted.location)
    return ValidationResult(
        name_match_score=score,
        distance_meters=distance,
        classification=classify_scores(score, distance),
    )
