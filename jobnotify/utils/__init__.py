"""Small shared helpers for time handling and opaque identifiers."""

from .timestamps import format_timestamp, parse_timestamp, utc_now
from .tokens import generate_token

__all__ = [
    "utc_now",
    "format_timestamp",
    "parse_timestamp",
    "generate_token",
]
