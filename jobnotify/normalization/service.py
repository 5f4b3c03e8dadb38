"""Listing normalization: raw feed entries to immutable Listing models.

Derived attributes:
- id: the ``work_id`` query parameter of the detail URL
- region: longest address prefix ending in 市/縣, with 台 canonicalized to 臺;
  UNKNOWN_REGION when there is no such prefix
- requires_accessibility_certificate: see ``derive_accessibility_flag``
"""

import re
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from jobnotify.config.models import AccessibilityRules
from jobnotify.domain.models import UNKNOWN_REGION, Listing, RawListing
from jobnotify.feed.client import FeedClient
from jobnotify.feed.exceptions import FeedFormatError
from jobnotify.logging import get_logger

from .models import ListingFormatError, NormalizationBatch

logger = get_logger(__name__, component="normalization")

WORK_ID_PATTERN = re.compile(r"work_id=(\d+)")
# Greedy: the longest prefix ending in 市/縣 (with at least one char after) wins
REGION_PATTERN = re.compile(r"(.+[市縣]).+")
LEGACY_REGION_CHAR = "台"
CANONICAL_REGION_CHAR = "臺"


def extract_listing_id(view_url: str) -> str:
    """Return the stable listing id embedded in a detail URL.

    Raises:
        ListingFormatError: If the URL has no ``work_id`` parameter
    """
    match = WORK_ID_PATTERN.search(view_url or "")
    if not match:
        raise ListingFormatError(f"No work_id in view_url: '{view_url}'")
    return match.group(1)


def derive_region(address: str) -> str:
    """Parse the city/county from a work address."""
    match = REGION_PATTERN.match(address or "")
    if not match:
        return UNKNOWN_REGION
    return match.group(1).replace(LEGACY_REGION_CHAR, CANONICAL_REGION_CHAR)


def derive_accessibility_flag(
    eligibility: str, title: str, rules: AccessibilityRules
) -> bool:
    """Whether a listing is reserved for disability-certificate holders.

    True when the eligibility text demands the certificate and does not merely
    prefer it (qualifier within the configured window after the phrase), or
    when the title mentions the certificate at all.
    """
    phrase = rules.requirement_phrase
    preferred_only = re.compile(
        re.escape(phrase)
        + ".{0,%d}" % rules.preference_window
        + re.escape(rules.preference_qualifier)
    )

    eligibility = eligibility or ""
    if phrase in eligibility and not preferred_only.search(eligibility):
        return True
    return phrase in (title or "")


class ListingNormalizer:
    """Turns feed entries into Listings and owns the full-feed fetch.

    Responsibilities:
    - Unwrap feed entries (``{"pk": ..., "fields": {...}}`` or bare field maps)
    - Validate and coerce raw fields
    - Derive id, region and accessibility flag
    - Drop malformed or duplicate entries with a warning
    """

    def __init__(
        self,
        rules: Optional[AccessibilityRules] = None,
        feed_client: Optional[FeedClient] = None,
    ):
        self.rules = rules or AccessibilityRules()
        self.feed_client = feed_client

    def normalize(self, entry: Mapping[str, Any]) -> Listing:
        """Normalize one feed entry. Pure: no I/O, no shared state.

        Raises:
            ListingFormatError: If the entry lacks usable fields or a work_id
        """
        fields = entry.get("fields", entry) if isinstance(entry, Mapping) else None
        if not isinstance(fields, Mapping):
            raise ListingFormatError("Feed entry has no field mapping")

        try:
            raw = RawListing.model_validate(dict(fields))
        except ValidationError as e:
            raise ListingFormatError(f"Invalid listing fields: {e}") from e

        return Listing(
            **raw.model_dump(),
            id=extract_listing_id(raw.view_url),
            region=derive_region(raw.work_addr),
            requires_accessibility_certificate=derive_accessibility_flag(
                raw.work_quality, raw.title, self.rules
            ),
        )

    def normalize_all(self, entries: Iterable[Mapping[str, Any]]) -> NormalizationBatch:
        """Normalize a whole feed, keeping feed order and the first of any duplicate id."""
        batch = NormalizationBatch()
        seen_ids = set()

        for index, entry in enumerate(entries):
            try:
                listing = self.normalize(entry)
            except ListingFormatError as e:
                batch.skipped += 1
                logger.warning(
                    f"Skipping malformed feed entry #{index}: {e}",
                    extra={
                        "event": "normalization.entry.skipped",
                        "entry_index": index,
                        "pk": entry.get("pk") if isinstance(entry, Mapping) else None,
                    },
                )
                continue

            if listing.id in seen_ids:
                batch.duplicates += 1
                continue
            seen_ids.add(listing.id)
            batch.listings.append(listing)

        return batch

    def fetch_all(self) -> List[Listing]:
        """Fetch the feed and normalize every entry.

        Raises:
            FeedError: If the feed cannot be fetched or its literal parsed
            FeedFormatError: If the feed has entries but none of them is usable,
                which means the entry shape changed upstream
        """
        if self.feed_client is None:
            raise RuntimeError("ListingNormalizer.fetch_all() requires a feed_client")

        entries = self.feed_client.fetch_raw_listings()
        batch = self.normalize_all(entries)
        if entries and not batch.listings:
            raise FeedFormatError(
                f"None of the {len(entries)} feed entries could be normalized"
            )

        logger.info(
            f"Normalized {len(batch.listings)} listings",
            extra={
                "event": "normalization.completed",
                "count": len(batch.listings),
                "skipped": batch.skipped,
                "duplicates": batch.duplicates,
            },
        )
        return batch.listings
