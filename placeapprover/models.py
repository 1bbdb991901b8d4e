"""Data types passed between pipeline stages."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from .constants import (
    STATUS_PENDING,
    ACTION_APPROVED,
    ACTION_REJECTED,
    ACTION_FLAGGED,
    ACTION_SKIPPED,
    ACTION_ERROR,
    MAX_SUBMISSIONS_PER_RUN,
)


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lng: float


@dataclass
class Submission:
    """A user-submitted place awaiting review."""

    id: str
    name: str
    source_link: str
    raw_location: str  # "POINT(lng lat)" or hex EWKB
    submitted_by: Optional[str] = None
    status: str = STATUS_PENDING
    review_notes: Optional[str] = None
    linked_record_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None


@dataclass
class ParsedSubmission:
    submission: Submission
    location: Coordinate

    @property
    def id(self) -> str:
        return self.submission.id

    @property
    def name(self) -> str:
        return self.submission.name


@dataclass
class ExtractedRecord:
    """Place details pulled from the submitted map link."""

    name: str
    address: str
    location: Coordinate
    phone: Optional[str] = None
    website: Optional[str] = None
    photos: List[str] = field(default_factory=list)
    hours: Optional[Dict[str, str]] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None


@dataclass
class ExistingRecord:
    id: str
    name: str
    location: Coordinate
    address: Optional[str] = None


@dataclass
class ValidationResult:
    name_match_score: float
    distance_meters: int
    classification: str


@dataclass
class AdjudicationDecision:
    approve: bool
    reasoning: str


@dataclass
class ProcessingResult:
    submission_id: str
    success: bool = False
    action: str = ACTION_ERROR
    record_id: Optional[str] = None
    notes: str = ""
    name_match_score: Optional[float] = None
    distance_meters: Optional[int] = None
    used_adjudicator: bool = False


@dataclass
class ApproverConfig:
    preview_mode: bool = False  # compute decisions without persisting anything
    limit: int = MAX_SUBMISSIONS_PER_RUN
    verbose: bool = True


@dataclass
class RunSummary:
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    total_processed: int = 0
    approved: int = 0
    rejected: int = 0
    flagged: int = 0
    skipped: int = 0
    errors: int = 0
    adjudicator_calls: int = 0
    results: List[ProcessingResult] = field(default_factory=list)

    _COUNTERS = {
        ACTION_APPROVED: "approved",
        ACTION_REJECTED: "rejected",
        ACTION_FLAGGED: "flagged",
        ACTION_SKIPPED: "skipped",
        ACTION_ERROR: "errors",
    }

    def add(self, result: ProcessingResult) -> None:
        """Accumulate one submission's result."""
        self.results.append(result)
        self.total_processed += 1
        if result.used_adjudicator:
            self.adjudicator_calls += 1
        counter = self._COUNTERS[result.action]
        setattr(self, counter, getattr(self, counter) + 1)

    def finish(self) -> None:
        self.completed_at = datetime.now()

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["completed_at"] = self.completed_at.isoformat() if self.completed_at else None
        data["duration_seconds"] = self.duration_seconds
        return data
