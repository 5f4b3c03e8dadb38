"""Test helpers for the job notifier tests."""

from .factories import (
    RecordingChannel,
    feed_entry,
    feed_page,
    make_listing,
    make_subscription_record,
)

__all__ = [
    "RecordingChannel",
    "feed_entry",
    "feed_page",
    "make_listing",
    "make_subscription_record",
]
