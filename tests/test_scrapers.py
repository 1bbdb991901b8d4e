"""
Tests for Google Maps extraction and the retrying fetch wrapper.
"""

import pytest
import requests

from placeapprover.models import Coordinate
from placeapprover.scrapers import common, google_maps
from placeapprover.scrapers.common import ScrapeExhausted, fetch_page, fetch_with_retry
from placeapprover.scrapers.google_maps import (
    ExtractionError,
    extract_coordinates,
    is_valid_maps_url,
    parse,
)


PLACE_URL = "https://www.google.com/maps/place/Blue+Bottle+Coffee/@37.7749,-122.4194,17z"


class FakeResponse:
    def __init__(self, text="", status_code=200, url=""):
        self.text = text
        self.status_code = status_code
        self.url = url

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error", response=self)


@pytest.fixture
def fake_get(monkeypatch):
    """Patch requests.get with a recorder returning a configurable response."""
    calls = []
    state = {"response": FakeResponse(), "error": None}

    def _get(url, timeout=None, headers=None):
        calls.append({"url": url, "timeout": timeout, "headers": headers})
        if state["error"]:
            raise state["error"]
        return state["response"]

    monkeypatch.setattr(common.requests, "get", _get)
    state["calls"] = calls
    return state


class TestIsValidMapsUrl:
    @pytest.mark.parametrize("url", [
        PLACE_URL,
        "https://google.com/maps/place/Ritual+Coffee",
        "https://www.google.co.uk/maps/search/coffee/@51.5,-0.12,14z",
        "http://www.google.com/maps/place/X",
        "https://maps.app.goo.gl/AbCdEf123",
        "https://goo.gl/maps/AbCdEf123",
    ])
    def test_valid(self, url):
        assert is_valid_maps_url(url)

    @pytest.mark.parametrize("url", [
        "",
        "not-a-url",
        "ftp://www.google.com/maps/place/X",
        "https://www.google.com/search?q=coffee",
        "https://www.google.com/maps",
        "https://goo.gl/abc",
        "https://example.com/maps/place/X",
        None,
    ])
    def test_invalid(self, url):
        assert not is_valid_maps_url(url)


class TestExtractCoordinates:
    def test_at_pattern(self):
        assert extract_coordinates(PLACE_URL) == Coordinate(lat=37.7749, lng=-122.4194)

    def test_data_pattern(self):
        url = "https://www.google.com/maps/place/X/data=!4m6!3m5!1s0x0:0x0!8m2!3d40.7128!4d-74.006"
        assert extract_coordinates(url) == Coordinate(lat=40.7128, lng=-74.006)

    def test_query_pattern(self):
        assert extract_coordinates("https://maps.google.com/?q=51.5074,-0.1278") == Coordinate(lat=51.5074, lng=-0.1278)

    def test_encoded_center(self):
        text = "https://maps.google.com/maps/api/staticmap?center=37.7825%2C-122.4078&zoom=16"
        assert extract_coordinates(text) == Coordinate(lat=37.7825, lng=-122.4078)

    def test_out_of_range(self):
        assert extract_coordinates("https://www.google.com/maps/@95.0,10.0,12z") is None

    def test_none_found(self):
        assert extract_coordinates("https://maps.app.goo.gl/AbCdEf123") is None
        assert extract_coordinates("") is None


class TestFetchPage:
    def test_success(self, fake_get):
        fake_get["response"] = FakeResponse(text="<html></html>")

        resp = fetch_page(PLACE_URL)

        assert resp.text == "<html></html>"
        call = fake_get["calls"][0]
        assert call["timeout"] == 30
        assert "Mozilla" in call["headers"]["User-Agent"]

    def test_not_found(self, fake_get):
        fake_get["response"] = FakeResponse(status_code=404)

        with pytest.raises(ValueError, match="not found"):
            fetch_page(PLACE_URL)

    def test_server_error(self, fake_get):
        fake_get["response"] = FakeResponse(status_code=503)

        with pytest.raises(ValueError, match="503"):
            fetch_page(PLACE_URL)

    def test_timeout(self, fake_get):
        fake_get["error"] = requests.exceptions.Timeout()

        with pytest.raises(ValueError, match="timed out"):
            fetch_page(PLACE_URL)

    def test_connection_error(self, fake_get):
        fake_get["error"] = requests.exceptions.ConnectionError("refused")

        with pytest.raises(ValueError, match="request error"):
            fetch_page(PLACE_URL)


class TestParse:
    def test_full_page(self, fake_get, sample_maps_html):
        fake_get["response"] = FakeResponse(text=sample_maps_html, url=PLACE_URL)

        record = parse(PLACE_URL)

        assert record.name == "Blue Bottle Coffee"
        assert record.address == "66 Mint St, San Francisco, CA 94103"
        assert record.location == Coordinate(lat=37.7749, lng=-122.4194)
        assert record.phone == "(415) 555-0100"
        assert record.website == "https://bluebottlecoffee.com/"
        assert record.rating == 4.5
        assert record.review_count == 1234
        assert record.hours == {"summary": "Open 7 AM - 6 PM"}
        assert record.photos == [
            "https://lh5.googleusercontent.com/p/photo1",
            "https://lh5.googleusercontent.com/p/photo2",
        ]

    def test_short_link_uses_redirected_url(self, fake_get, sample_maps_html):
        fake_get["response"] = FakeResponse(text=sample_maps_html, url=PLACE_URL)

        record = parse("https://maps.app.goo.gl/AbCdEf123")

        assert record.location == Coordinate(lat=37.7749, lng=-122.4194)

    def test_coordinates_from_og_image(self, fake_get, sample_maps_html):
        fake_get["response"] = FakeResponse(text=sample_maps_html, url="https://maps.app.goo.gl/AbCdEf123")

        record = parse("https://maps.app.goo.gl/AbCdEf123")

        assert record.location == Coordinate(lat=37.7825, lng=-122.4078)

    def test_name_from_title(self, fake_get):
        html = "<html><head><title>Ritual Coffee Roasters - Google Maps</title></head><body></body></html>"
        fake_get["response"] = FakeResponse(text=html, url=PLACE_URL)

        record = parse(PLACE_URL)

        assert record.name == "Ritual Coffee Roasters"
        assert record.address == ""
        assert record.photos == []
        assert record.rating is None

    def test_missing_name(self, fake_get):
        fake_get["response"] = FakeResponse(text="<html><body><p>nothing</p></body></html>", url=PLACE_URL)

        with pytest.raises(ExtractionError):
            parse(PLACE_URL)

    def test_missing_coordinates(self, fake_get):
        url = "https://maps.app.goo.gl/AbCdEf123"
        fake_get["response"] = FakeResponse(text="<html><body><h1>Somewhere</h1></body></html>", url=url)

        with pytest.raises(ExtractionError, match="coordinates"):
            parse(url)


class TestFetchWithRetry:
    def test_success_after_failures(self, extractor_factory, make_extracted, sleep_recorder):
        extractor = extractor_factory(record=make_extracted(), failures=2)

        record = fetch_with_retry(PLACE_URL, extractor=extractor, sleep=sleep_recorder)

        assert record.name == "Blue Bottle Coffee"
        assert len(extractor.calls) == 3
        assert sleep_recorder.delays == [2.0, 4.0]

    def test_exhausted_after_three_attempts(self, extractor_factory, sleep_recorder):
        extractor = extractor_factory(record=None)

        with pytest.raises(ScrapeExhausted) as exc_info:
            fetch_with_retry(PLACE_URL, extractor=extractor, sleep=sleep_recorder)

        assert len(extractor.calls) == 3
        assert sleep_recorder.delays == [2.0, 4.0]
        assert exc_info.value.attempts == 3

    def test_default_extractor_is_google_maps(self, monkeypatch, make_extracted, sleep_recorder):
        seen = []

        def fake_parse(url):
            seen.append(url)
            return make_extracted()

        monkeypatch.setattr(google_maps, "parse", fake_parse)

        fetch_with_retry(PLACE_URL, sleep=sleep_recorder)

        assert seen == [PLACE_URL]
        assert sleep_recorder.delays == []
