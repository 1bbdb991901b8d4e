"""
Pytest configuration and shared fixtures.
"""

import pytest
from typing import List, Optional

from placeapprover.models import Coordinate, ExistingRecord, ExtractedRecord, Submission
from placeapprover.storage import PlaceStore


SF = Coordinate(lat=37.7749, lng=-122.4194)
MAPS_URL = "https://www.google.com/maps/place/Blue+Bottle+Coffee/@37.7749,-122.4194,17z"


class FakeStore:
    """In-memory stand-in for PlaceStore that records every call."""

    def __init__(self, submissions: Optional[List[Submission]] = None, nearby: Optional[List[ExistingRecord]] = None):
        self.submissions = list(submissions or [])
        self.nearby = list(nearby or [])
        self.created: List[ExtractedRecord] = []
        self.status_updates = []
        self.nearby_calls = []
        self.refresh_calls = 0
        self.fetch_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.refresh_error: Optional[Exception] = None

    def fetch_pending(self, limit):
        if self.fetch_error:
            raise self.fetch_error
        return [s for s in self.submissions if s.status == "pending"][:limit]

    def nearby_places(self, center, radius_meters, limit=20):
        self.nearby_calls.append((center, radius_meters, limit))
        return list(self.nearby)

    def create_place(self, extracted):
        if self.create_error:
            raise self.create_error
        self.created.append(extracted)
        return f"place-{len(self.created)}"

    def update_submission_status(self, submission_id, status, notes, linked_record_id=None):
        self.status_updates.append((submission_id, status, notes, linked_record_id))
        for s in self.submissions:
            if s.id == submission_id:
                s.status = status

    def refresh_aggregates(self):
        self.refresh_calls += 1
        if self.refresh_error:
            raise self.refresh_error


class StubCompletionClient:
    """Completion client returning a canned response and recording prompts."""

    def __init__(self, response: str = "", error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.response


class RecordingExtractor:
    """Extractor that fails a set number of times before returning a record."""

    def __init__(self, record: Optional[ExtractedRecord] = None, failures: int = 0):
        self.record = record
        self.failures = failures
        self.calls: List[str] = []

    def __call__(self, url: str) -> ExtractedRecord:
        self.calls.append(url)
        if len(self.calls) <= self.failures or self.record is None:
            raise ValueError(f"Extraction failed (call {len(self.calls)})")
        return self.record


class SleepRecorder:
    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, seconds: float):
        self.delays.append(seconds)


@pytest.fixture
def make_submission():
    """Factory for pending submissions."""
    counter = [0]

    def _make(
        name: str = "Blue Bottle Coffee",
        source_link: str = MAPS_URL,
        location: Coordinate = SF,
        raw_location: Optional[str] = None,
    ) -> Submission:
        counter[0] += 1
        return Submission(
            id=f"sub-{counter[0]}",
            name=name,
            source_link=source_link,
            raw_location=raw_location or f"POINT({location.lng} {location.lat})",
        )

    return _make


@pytest.fixture
def make_extracted():
    def _make(name: str = "Blue Bottle Coffee", location: Coordinate = SF, address: str = "66 Mint St, San Francisco, CA") -> ExtractedRecord:
        return ExtractedRecord(
            name=name,
            address=address,
            location=location,
            phone="(415) 555-0100",
            website="https://bluebottlecoffee.com",
            photos=["https://lh5.googleusercontent.com/p/photo1"],
            hours={"summary": "Open 7 AM - 6 PM"},
            rating=4.5,
            review_count=1234,
        )

    return _make


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def extractor_factory():
    return RecordingExtractor


@pytest.fixture
def completion_client_factory():
    return StubCompletionClient


@pytest.fixture
def place_store(tmp_path) -> PlaceStore:
    """A PlaceStore backed by a temporary SQLite file."""
    return PlaceStore(tmp_path / "places.db")


@pytest.fixture
def sample_maps_html() -> str:
    """Sample Google Maps place page HTML."""
    return """
    <html>
    <head>
        <title>Blue Bottle Coffee - Google Maps</title>
        <meta property="og:title" content="Blue Bottle Coffee · 66 Mint St">
        <meta property="og:image" content="https://maps.google.com/maps/api/staticmap?center=37.7825%2C-122.4078&amp;zoom=16">
    </head>
    <body>
        <h1>Blue Bottle Coffee</h1>
        <div jsaction="pane.rating.moreReviews">4.5 stars 1,234 reviews</div>
        <button data-item-id="address" aria-label="Address: 66 Mint St, San Francisco, CA 94103"></button>
        <button data-item-id="phone:tel:+14155550100" aria-label="Phone: (415) 555-0100"></button>
        <a data-item-id="authority" href="https://bluebottlecoffee.com/"></a>
        <button data-item-id="oh" aria-label="Open 7 AM - 6 PM"></button>
        <button jsaction="pane.heroHeaderImage.click; photo">
            <img src="https://lh5.googleusercontent.com/p/photo1">
        </button>
        <button jsaction="pane.photo.open">
            <img src="https://lh5.googleusercontent.com/p/photo2">
        </button>
    </body>
    </html>
    """
