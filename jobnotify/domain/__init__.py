"""Domain models shared across the pipeline."""

from .models import (
    UNKNOWN_REGION,
    DeliveryJob,
    FilterCondition,
    Listing,
    RawListing,
    Subscription,
    SubscriptionRecord,
)

__all__ = [
    "UNKNOWN_REGION",
    "RawListing",
    "Listing",
    "FilterCondition",
    "Subscription",
    "SubscriptionRecord",
    "DeliveryJob",
]
