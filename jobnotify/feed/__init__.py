"""Upstream listing feed retrieval.

    from jobnotify.feed import FeedClient
    entries = FeedClient(app_config.feed).fetch_raw_listings()
"""

from .client import FeedClient, extract_listing_literal
from .exceptions import FeedError, FeedFormatError, FeedHTTPError, FeedTimeoutError

__all__ = [
    "FeedClient",
    "extract_listing_literal",
    "FeedError",
    "FeedFormatError",
    "FeedHTTPError",
    "FeedTimeoutError",
]
