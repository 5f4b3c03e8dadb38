"""Condition matching: pure predicates over normalized listings.

Constraints are checked in a fixed order and the first failure short-circuits.
An absent constraint always passes, so an empty condition matches everything.
"""

from typing import Iterable, List, Optional

from jobnotify.domain.models import UNKNOWN_REGION, FilterCondition, Listing

from .models import (
    CONSTRAINT_ACCESSIBILITY,
    CONSTRAINT_JOB_FAMILY,
    CONSTRAINT_JOB_TYPE,
    CONSTRAINT_REGION,
    MatchResult,
)


def _failed_constraint(listing: Listing, condition: FilterCondition) -> Optional[str]:
    if condition.job_type is not None and condition.job_type not in listing.job_type:
        return CONSTRAINT_JOB_TYPE

    if condition.regions is not None and (
        listing.region == UNKNOWN_REGION or listing.region not in condition.regions
    ):
        return CONSTRAINT_REGION

    if (
        condition.requires_accessibility is not None
        and listing.requires_accessibility_certificate != condition.requires_accessibility
    ):
        return CONSTRAINT_ACCESSIBILITY

    # Any configured family occurring in the job-family text passes
    if condition.job_families is not None and not any(
        family in listing.sysnam for family in condition.job_families
    ):
        return CONSTRAINT_JOB_FAMILY

    return None


def matches(listing: Listing, condition: FilterCondition) -> bool:
    """Return True when ``listing`` satisfies every present constraint of ``condition``."""
    return _failed_constraint(listing, condition) is None


class ConditionMatcher:
    """Evaluates listings against a single subscriber condition."""

    def __init__(self, condition: FilterCondition):
        self.condition = condition

    def evaluate(self, listing: Listing) -> MatchResult:
        failed = _failed_constraint(listing, self.condition)
        return MatchResult(
            listing_id=listing.id,
            is_match=failed is None,
            failed_constraint=failed,
        )

    def filter(self, listings: Iterable[Listing]) -> List[Listing]:
        """Return the matching listings, preserving input order."""
        return [listing for listing in listings if matches(listing, self.condition)]
