"""Normalization results and errors."""

from dataclasses import dataclass, field
from typing import List

from jobnotify.domain.models import Listing


class ListingFormatError(ValueError):
    """A single feed entry cannot be turned into a Listing."""


@dataclass
class NormalizationBatch:
    """Outcome of normalizing a whole feed.

    Attributes:
        listings: Normalized listings in feed order, unique by id
        skipped: Number of entries rejected as malformed
        duplicates: Number of entries dropped because their id repeated
    """

    listings: List[Listing] = field(default_factory=list)
    skipped: int = 0
    duplicates: int = 0
