"""Match outcome for a listing evaluated against a filter condition."""

from dataclasses import dataclass
from typing import Optional

CONSTRAINT_JOB_TYPE = "job_type"
CONSTRAINT_REGION = "region"
CONSTRAINT_ACCESSIBILITY = "accessibility"
CONSTRAINT_JOB_FAMILY = "job_family"


@dataclass(frozen=True)
class MatchResult:
    """Result of ``ConditionMatcher.evaluate``.

    Attributes:
        listing_id: Evaluated listing
        is_match: True when every present constraint passed
        failed_constraint: First constraint that failed, None on a match
    """

    listing_id: str
    is_match: bool
    failed_constraint: Optional[str] = None
