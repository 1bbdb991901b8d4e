"""Shared HTTP fetching and retry policy for place extraction."""

import time
from typing import Callable, Optional

import requests

from ..constants import MAX_RETRY_ATTEMPTS, RETRY_BASE_DELAY_SECONDS, SCRAPER_TIMEOUT_SECONDS
from ..logger import get_logger
from ..models import ExtractedRecord
from ..retry import RetryError, retry_call

logger = get_logger()

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class ScrapeExhausted(RetryError):
    """Raised when extraction failed on every allowed attempt."""
    pass


def fetch_page(url: str, platform: str = "google maps") -> requests.Response:
    """Fetch URL with standardized error handling and logging.

    Args:
        url: The URL to fetch
        platform: Name used in log and error messages

    Returns:
        Response object on success

    Raises:
        ValueError: On any HTTP error, timeout, or request failure
    """
    label = platform.capitalize()
    try:
        resp = requests.get(
            url,
            timeout=SCRAPER_TIMEOUT_SECONDS,
            headers={"User-Agent": USER_AGENT, "Accept-Language": "en-US,en;q=0.9"},
        )
        resp.raise_for_status()
        return resp
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else "HTTPError"
        if status == 404:
            logger.warning(f"{label} URL not found", url=url, status=404)
            raise ValueError(f"{label} URL not found (404): {url}")
        logger.error(f"{label} request failed", url=url, status=status)
        raise ValueError(f"{label} request failed ({status}): {url}")
    except requests.exceptions.Timeout:
        logger.warning(f"{label} request timed out", url=url)
        raise ValueError(f"{label} request timed out. Try again later.")
    except requests.exceptions.RequestException as e:
        logger.error(f"{label} request error", url=url, error=str(e))
        raise ValueError(f"{label} request error: {e}")


def fetch_with_retry(
    url: str,
    extractor: Optional[Callable[[str], ExtractedRecord]] = None,
    max_attempts: int = MAX_RETRY_ATTEMPTS,
    base_delay: float = RETRY_BASE_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> ExtractedRecord:
    """Extract place data from url, backing off 2s, 4s, ... between attempts.

    Raises:
        ScrapeExhausted: After max_attempts failed extractions
    """
    if extractor is None:
        from .google_maps import parse as extractor

    def attempt():
        logger.record_scrape_attempt()
        try:
            record = extractor(url)
        except Exception as e:
            logger.record_scrape_failure(type(e).__name__)
            raise
        logger.record_scrape_success()
        return record

    def on_retry(attempt_no: int, error: Exception, delay: float):
        logger.warning(
            f"Extraction attempt {attempt_no}/{max_attempts} failed, retrying in {delay:g}s",
            url=url,
            error=str(error),
        )

    try:
        return retry_call(
            attempt,
            max_attempts=max_attempts,
            base_delay=base_delay,
            on_retry=on_retry,
            sleep=sleep,
            error_class=ScrapeExhausted,
        )
    except ScrapeExhausted as e:
        logger.error("Extraction exhausted", url=url, attempts=e.attempts, error=str(e))
        raise
