import math
import re
from typing import Any, Dict, List
from urllib.parse import urlparse

REQUIRED_STR_FIELDS = ["name", "source_link"]
DECISION_FIELDS = {"approve", "reasoning"}

MAPS_LINK_PATTERN = re.compile(r"^https://(www\.)?google\.[a-z.]+/maps", re.IGNORECASE)


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_url(v: str) -> bool:
    try:
        p = urlparse(v)
        return bool(p.scheme and p.netloc)
    except ValueError:
        return False


def _in_range(v: Any, low: float, high: float) -> bool:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return False
    return math.isfinite(v) and low <= v <= high


def validate_submission(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages for a new submission.
    Empty list means valid. Expects name, source_link, lat, lng.
    """
    errors: List[str] = []

    for f in REQUIRED_STR_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    link = data.get("source_link")
    if _is_non_empty_str(link):
        link = link.strip()
        if not _valid_url(link):
            errors.append("Field 'source_link' must be a valid absolute URL (scheme + host)")
        elif not MAPS_LINK_PATTERN.match(link):
            errors.append("Field 'source_link' must be a Google Maps link")

    if not _in_range(data.get("lat"), -90, 90):
        errors.append("Field 'lat' must be a number between -90 and 90")
    if not _in_range(data.get("lng"), -180, 180):
        errors.append("Field 'lng' must be a number between -180 and 180")

    return errors


def validate_decision(data: Any) -> List[str]:
    """
    Strict shape check for an adjudication answer:
    exactly {"approve": bool, "reasoning": non-empty str}.
    """
    if not isinstance(data, dict):
        return [f"Decision must be a JSON object, got {type(data).__name__}"]

    errors: List[str] = []
    missing = DECISION_FIELDS - data.keys()
    extra = data.keys() - DECISION_FIELDS
    for f in sorted(missing):
        errors.append(f"Missing required field: {f}")
    for f in sorted(extra):
        errors.append(f"Unexpected field: {f}")

    if "approve" in data and not isinstance(data["approve"], bool):
        errors.append("Field 'approve' must be a boolean")
    if "reasoning" in data and not _is_non_empty_str(data["reasoning"]):
        errors.append("Field 'reasoning' must be a non-empty string")

    return errors
