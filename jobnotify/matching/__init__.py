"""Condition matching of listings against subscriber filters."""

from .engine import ConditionMatcher, matches
from .models import (
    CONSTRAINT_ACCESSIBILITY,
    CONSTRAINT_JOB_FAMILY,
    CONSTRAINT_JOB_TYPE,
    CONSTRAINT_REGION,
    MatchResult,
)

__all__ = [
    "ConditionMatcher",
    "MatchResult",
    "matches",
    "CONSTRAINT_JOB_TYPE",
    "CONSTRAINT_REGION",
    "CONSTRAINT_ACCESSIBILITY",
    "CONSTRAINT_JOB_FAMILY",
]
