"""HTTP client for the listing feed page.

The feed is an HTML page that embeds every open listing in a script literal:

    var jobdata = [{"model": "...", "pk": 1, "fields": {...}}, ...];

The client downloads the page with an enforced timeout and extracts that
literal. It does not interpret individual entries; see ListingNormalizer.
"""

import json
import re
from typing import Any, Dict, List, Optional

import requests

from jobnotify.config.models import FeedConfig
from jobnotify.logging import get_logger

from .exceptions import FeedFormatError, FeedHTTPError, FeedTimeoutError

logger = get_logger(__name__, component="feed")

LISTING_LITERAL_PATTERN = re.compile(r"var\s+jobdata\s*=\s*(\[.*\])")


def extract_listing_literal(html: str) -> List[Dict[str, Any]]:
    """Locate and parse the embedded listing array.

    Raises:
        FeedFormatError: If the literal is absent, is not valid JSON, or is not
            an array of objects
    """
    match = LISTING_LITERAL_PATTERN.search(html or "")
    if not match:
        raise FeedFormatError("Listing literal 'var jobdata = [...]' not found in feed page")

    try:
        entries = json.loads(match.group(1))
    except ValueError as e:
        raise FeedFormatError(f"Listing literal is not valid JSON: {e}") from e

    if not isinstance(entries, list):
        raise FeedFormatError(f"Expected listing array, got {type(entries).__name__}")
    if any(not isinstance(entry, dict) for entry in entries):
        raise FeedFormatError("Listing array contains non-object entries")

    return entries


class FeedClient:
    """Downloads the feed page.

    Attributes:
        url: Feed page URL
        timeout: Request timeout in seconds
    """

    def __init__(self, config: FeedConfig, session: Optional[requests.Session] = None) -> None:
        self.url = config.url
        self.timeout = config.timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": config.user_agent})

    def fetch_page(self) -> str:
        """Fetch the raw HTML of the feed page.

        Raises:
            FeedTimeoutError: On request timeout
            FeedHTTPError: On HTTP >= 400 or connection failure
        """
        logger.info(
            "Fetching listing feed",
            extra={"event": "feed.fetch.started", "url": self.url, "timeout": self.timeout},
        )

        try:
            response = self._session.get(self.url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Feed request timed out after {self.timeout} seconds",
                extra={"event": "feed.fetch.timeout", "url": self.url},
            )
            raise FeedTimeoutError(
                f"Request to {self.url} timed out after {self.timeout} seconds", url=self.url
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"Feed request failed: {e}",
                extra={
                    "event": "feed.fetch.error",
                    "error_type": type(e).__name__,
                    "url": self.url,
                },
            )
            raise FeedHTTPError(
                f"Request to {self.url} failed: {e}", status_code=0, url=self.url
            ) from e

        if response.status_code >= 400:
            logger.error(
                f"HTTP {response.status_code} from feed",
                extra={
                    "event": "feed.fetch.error",
                    "status_code": response.status_code,
                    "url": self.url,
                },
            )
            raise FeedHTTPError(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
                url=self.url,
            )

        # requests falls back to ISO-8859-1 for text/html without a charset
        if "charset" not in response.headers.get("Content-Type", "").lower():
            response.encoding = "utf-8"

        return response.text

    def fetch_raw_listings(self) -> List[Dict[str, Any]]:
        """Fetch the page and return the parsed listing entries.

        Raises:
            FeedError: Any retrieval or format failure
        """
        entries = extract_listing_literal(self.fetch_page())
        logger.info(
            f"Feed returned {len(entries)} entries",
            extra={"event": "feed.fetch.succeeded", "count": len(entries)},
        )
        return entries
