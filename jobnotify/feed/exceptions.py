"""Exceptions raised while fetching the upstream listing feed.

Every FeedError aborts the refresh cycle: no snapshot is written, so the
previous snapshot stays in effect.
"""


class FeedError(Exception):
    """Base exception for feed retrieval failures."""


class FeedFormatError(FeedError):
    """The feed page was fetched but the embedded listing literal is missing or invalid."""


class FeedHTTPError(FeedError):
    """The feed request failed with an error status or a connection error."""

    def __init__(self, message: str, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class FeedTimeoutError(FeedError):
    """The feed request did not complete within the configured timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url
