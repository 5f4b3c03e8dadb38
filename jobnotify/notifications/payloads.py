"""Template contexts for listing, summary and confirmation messages."""

from typing import Dict, List, Optional

from jobnotify.domain.models import FilterCondition, Listing

UNRESTRICTED = "不限"


def build_listing_context(listing: Listing) -> Dict:
    return {"listing": listing}


def build_summary_context(
    total: int,
    shown: int,
    view_url: Optional[str],
    settings_url: str,
    unsubscribe_url: str,
) -> Dict:
    """Context for the per-job summary message.

    ``view_url`` is only included when some matches were not sent inline.
    """
    truncated = total > shown
    return {
        "total": total,
        "shown": shown,
        "truncated": truncated,
        "view_url": view_url if truncated else None,
        "settings_url": settings_url,
        "unsubscribe_url": unsubscribe_url,
    }


def _join(values: Optional[List[str]]) -> str:
    return ", ".join(values) if values else UNRESTRICTED


def describe_condition(condition: FilterCondition) -> Dict[str, str]:
    """Human-readable label/value pairs for a filter condition, in display order."""
    if condition.requires_accessibility is None:
        accessibility = UNRESTRICTED
    else:
        accessibility = "僅限" if condition.requires_accessibility else "排除"

    return {
        "官等": condition.job_type or UNRESTRICTED,
        "縣市": _join(condition.regions),
        "職系": _join(condition.job_families),
        "身心障礙職缺": accessibility,
    }
