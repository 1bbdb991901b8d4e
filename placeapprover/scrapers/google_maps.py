from typing import Dict, Optional, Tuple
from urllib.parse import urlparse, unquote
import re

from bs4 import BeautifulSoup

from ..logger import get_logger
from ..models import Coordinate, ExtractedRecord
from .common import fetch_page

logger = get_logger()

MAX_PHOTOS = 5

_COORD_PATTERNS = [
    re.compile(r"@(-?\d+\.\d+),(-?\d+\.\d+)"),            # @lat,lng,zoom
    re.compile(r"!3d(-?\d+\.\d+)!4d(-?\d+\.\d+)"),        # !3dlat!4dlng
    re.compile(r"[?&]q=(-?\d+\.\d+),(-?\d+\.\d+)"),       # ?q=lat,lng
    re.compile(r"center=(-?\d+\.\d+)(?:%2C|,)(-?\d+\.\d+)"),  # static map images
]


class ExtractionError(ValueError):
    """Raised when a fetched page lacks the fields a place needs."""
    pass


def is_valid_maps_url(url: str) -> bool:
    """Whether url looks like a Google Maps place or search link."""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        p = urlparse(url.strip())
    except ValueError:
        return False
    if p.scheme not in ("http", "https") or not p.netloc:
        return False

    host = p.netloc.lower()
    if host == "maps.app.goo.gl" or (host == "goo.gl" and p.path.startswith("/maps")):
        return True
    return "google." in host and ("/maps/place/" in p.path or "/maps/search/" in p.path)


def extract_coordinates(text: str) -> Optional[Coordinate]:
    """Find a lat/lng pair embedded in a maps URL (or URL-bearing text)."""
    if not text:
        return None
    decoded = unquote(text)
    for pattern in _COORD_PATTERNS:
        m = pattern.search(decoded)
        if m:
            lat, lng = float(m.group(1)), float(m.group(2))
            if -90 <= lat <= 90 and -180 <= lng <= 180:
                return Coordinate(lat=lat, lng=lng)
    return None


def _text(el) -> Optional[str]:
    if el is None:
        return None
    value = el.get_text(" ", strip=True)
    return value or None


def _meta(soup: BeautifulSoup, prop: str) -> Optional[str]:
    el = soup.find("meta", attrs={"property": prop}) or soup.find("meta", attrs={"itemprop": prop})
    if el and el.get("content"):
        return el["content"].strip()
    return None


def _aria_value(soup: BeautifulSoup, selector: str, prefix: str) -> Optional[str]:
    el = soup.select_one(selector)
    if el is None:
        return None
    label = (el.get("aria-label") or "").strip()
    if label.startswith(prefix):
        label = label[len(prefix):]
    return label.strip() or _text(el)


def _clean_title(title: str) -> str:
    for sep in (" - Google Maps", " · "):
        if sep in title:
            title = title.split(sep)[0]
    return title.strip()


def _parse_rating(soup: BeautifulSoup) -> Tuple[Optional[float], Optional[int]]:
    el = soup.select_one('div[jsaction*="pane.rating"]')
    if el is None:
        return None, None
    text = el.get_text(" ", strip=True)
    rating = None
    review_count = None
    m = re.search(r"(\d+(?:\.\d+)?)", text)
    if m:
        rating = float(m.group(1))
    m = re.search(r"([\d,]+)\s+reviews?", text, re.I)
    if m:
        review_count = int(m.group(1).replace(",", ""))
    return rating, review_count


def _parse_photos(soup: BeautifulSoup) -> list:
    photos = []
    for img in soup.select('button[jsaction*="photo"] img'):
        src = img.get("src")
        if src and "maps/api/js" not in src and src not in photos:
            photos.append(src)
        if len(photos) >= MAX_PHOTOS:
            break
    return photos


def _parse_hours(soup: BeautifulSoup) -> Optional[Dict[str, str]]:
    el = soup.select_one('[data-item-id*="oh"]')
    if el is None:
        return None
    summary = (el.get("aria-label") or "").strip() or _text(el)
    return {"summary": summary} if summary else None


def parse(url: str) -> ExtractedRecord:
    """Fetch a Google Maps place page and extract its details.

    Raises ValueError on HTTP errors and ExtractionError when the page
    has no usable name or coordinates.
    """
    logger.debug("Parsing Google Maps URL", url=url)
    resp = fetch_page(url)
    soup = BeautifulSoup(resp.text, "html.parser")

    name = _text(soup.find("h1"))
    if not name:
        title = _meta(soup, "og:title") or _text(soup.find("title"))
        name = _clean_title(title) if title else None
    if not name:
        raise ExtractionError(f"Could not find a place name on page: {url}")

    location = (
        extract_coordinates(url)
        or extract_coordinates(resp.url or "")
        or extract_coordinates(_meta(soup, "og:image") or "")
    )
    if location is None:
        raise ExtractionError(f"Could not extract coordinates from Google Maps URL: {url}")

    address = _aria_value(soup, 'button[data-item-id^="address"]', "Address:") or ""
    phone = _aria_value(soup, 'button[data-item-id^="phone"]', "Phone:")

    website = None
    site_link = soup.select_one('a[data-item-id^="authority"]')
    if site_link and site_link.get("href"):
        website = site_link["href"]

    rating, review_count = _parse_rating(soup)

    record = ExtractedRecord(
        name=name,
        address=address,
        location=location,
        phone=phone,
        website=website,
        photos=_parse_photos(soup),
        hours=_parse_hours(soup),
        rating=rating,
        review_count=review_count,
    )
    logger.debug("Successfully parsed Google Maps place", name=record.name, address=record.address)
    return record
