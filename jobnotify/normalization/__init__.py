"""Listing normalization and derived-attribute rules."""

from .models import ListingFormatError, NormalizationBatch
from .service import (
    ListingNormalizer,
    derive_accessibility_flag,
    derive_region,
    extract_listing_id,
)

__all__ = [
    "ListingNormalizer",
    "NormalizationBatch",
    "ListingFormatError",
    "derive_accessibility_flag",
    "derive_region",
    "extract_listing_id",
]
