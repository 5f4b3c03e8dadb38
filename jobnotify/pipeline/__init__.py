"""Refresh, notify and delivery stages and their session-bound runner."""

from .cycle import (
    CURRENT_LISTINGS_KEY,
    load_snapshot,
    parse_subscription,
    query_listings,
    refresh_listings,
    run_notify_cycle,
)
from .exceptions import MalformedSubscriptionError, PipelineError, SnapshotUnavailableError
from .models import DeliveryRunResult, EnqueuedJob, NotifyCycleResult, RefreshResult
from .runner import NotifyPipeline

__all__ = [
    "NotifyPipeline",
    "CURRENT_LISTINGS_KEY",
    "refresh_listings",
    "load_snapshot",
    "parse_subscription",
    "run_notify_cycle",
    "query_listings",
    "RefreshResult",
    "NotifyCycleResult",
    "DeliveryRunResult",
    "EnqueuedJob",
    "PipelineError",
    "SnapshotUnavailableError",
    "MalformedSubscriptionError",
]
