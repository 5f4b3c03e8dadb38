"""Refresh and notify cycles over explicit collaborators.

These functions hold the cycle semantics; ``runner.NotifyPipeline`` binds
them to database sessions, locks and the scheduler.
"""

import json
from typing import List, Optional
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from jobnotify.domain.models import (
    DeliveryJob,
    FilterCondition,
    Listing,
    Subscription,
    SubscriptionRecord,
)
from jobnotify.ledger.service import NotificationLedger, diff_new
from jobnotify.logging import get_logger
from jobnotify.logging.context import log_context
from jobnotify.matching.engine import ConditionMatcher
from jobnotify.normalization.service import ListingNormalizer
from jobnotify.persistence.base import DeliveryQueue, SnapshotStore, SubscriptionStore
from jobnotify.utils.timestamps import utc_now

from .exceptions import MalformedSubscriptionError, SnapshotUnavailableError
from .models import EnqueuedJob, NotifyCycleResult, RefreshResult

logger = get_logger(__name__, component="pipeline")

CURRENT_LISTINGS_KEY = "current_listings"
MAX_QUERY_LIMIT = 100

_snapshot_adapter = TypeAdapter(List[Listing])


def refresh_listings(
    normalizer: ListingNormalizer,
    store: SnapshotStore,
    cycle_id: Optional[str] = None,
) -> RefreshResult:
    """Fetch the feed and publish it as the current snapshot.

    The snapshot is written only after the whole feed normalized, so a failed
    refresh leaves the previous snapshot in place.

    Raises:
        FeedError: If the feed cannot be fetched or parsed
    """
    result = RefreshResult(cycle_id=cycle_id or uuid4().hex, started_at=utc_now())

    with log_context(cycle_id=result.cycle_id):
        listings = normalizer.fetch_all()
        store.put(CURRENT_LISTINGS_KEY, _snapshot_adapter.dump_json(listings))

        result.listing_count = len(listings)
        result.finished_at = utc_now()
        logger.info(
            f"Snapshot refreshed with {len(listings)} listings",
            extra={
                "event": "refresh.completed",
                "listing_count": len(listings),
                "duration_ms": int(result.duration_seconds * 1000),
            },
        )
    return result


def load_snapshot(store: SnapshotStore) -> List[Listing]:
    """Read the current snapshot.

    Raises:
        SnapshotUnavailableError: If no snapshot was published or it is unreadable
    """
    raw = store.get(CURRENT_LISTINGS_KEY)
    if raw is None:
        raise SnapshotUnavailableError("No listing snapshot has been published yet")
    try:
        return _snapshot_adapter.validate_json(raw)
    except ValidationError as e:
        raise SnapshotUnavailableError(f"Stored listing snapshot is unreadable: {e}") from e


def parse_subscription(record: SubscriptionRecord) -> Subscription:
    """Parse a stored subscription.

    Raises:
        MalformedSubscriptionError: If the condition is not a valid JSON object
            or the credential is empty
    """
    try:
        condition_data = json.loads(record.condition_json)
    except ValueError as e:
        raise MalformedSubscriptionError(
            f"Condition is not valid JSON: {e}", subscription_id=record.id
        ) from e

    if not isinstance(condition_data, dict):
        raise MalformedSubscriptionError(
            f"Condition must be a JSON object, got {type(condition_data).__name__}",
            subscription_id=record.id,
        )

    try:
        return Subscription(
            id=record.id,
            credential=record.credential,
            condition=FilterCondition.model_validate(condition_data),
        )
    except ValidationError as e:
        raise MalformedSubscriptionError(
            f"Invalid subscription: {e}", subscription_id=record.id
        ) from e


def run_notify_cycle(
    snapshot: List[Listing],
    subscriptions: SubscriptionStore,
    ledger: NotificationLedger,
    queue: DeliveryQueue,
    cycle_id: Optional[str] = None,
) -> NotifyCycleResult:
    """Match new listings against every subscription and enqueue delivery jobs.

    Steps:
    1. Diff the snapshot against the ledger to get the new listings
    2. For each subscription, filter the new listings through its condition
    3. Enqueue one job per subscription with a non-empty match, carrying every match
    4. Commit all new ids to the ledger, once

    A malformed subscription is skipped. An enqueue failure propagates before
    the ledger commit, so the new listings are reconsidered next cycle.
    """
    result = NotifyCycleResult(cycle_id=cycle_id or uuid4().hex, snapshot_size=len(snapshot))

    with log_context(cycle_id=result.cycle_id):
        ledger_ids = ledger.load_ids()
        new_listings = diff_new(snapshot, ledger_ids)
        result.new_listing_ids = [listing.id for listing in new_listings]

        logger.info(
            f"Notify cycle started: {len(new_listings)} new of {len(snapshot)} listings",
            extra={
                "event": "cycle.started",
                "snapshot_size": len(snapshot),
                "new_count": len(new_listings),
                "ledger_size": len(ledger_ids),
            },
        )

        if not new_listings:
            result.ledger_size = len(ledger_ids)
            logger.info("No new listings, nothing to notify", extra={"event": "cycle.completed"})
            return result

        for record in subscriptions.records():
            result.subscriptions_seen += 1
            with log_context(subscription_id=record.id):
                try:
                    subscription = parse_subscription(record)
                except MalformedSubscriptionError as e:
                    result.subscriptions_malformed += 1
                    logger.error(
                        f"Skipping malformed subscription {record.id}: {e}",
                        extra={"event": "cycle.subscription.malformed"},
                    )
                    continue

                matched = ConditionMatcher(subscription.condition).filter(new_listings)
                if not matched:
                    continue

                message_id = queue.enqueue(
                    DeliveryJob(
                        subscription_id=subscription.id,
                        credential=subscription.credential,
                        condition=subscription.condition,
                        matched_listings=matched,
                        cycle_id=result.cycle_id,
                    )
                )
                result.jobs.append(
                    EnqueuedJob(
                        message_id=message_id,
                        subscription_id=subscription.id,
                        matched_count=len(matched),
                    )
                )
                logger.debug(
                    f"Enqueued {len(matched)} matches for {subscription.id}",
                    extra={"event": "cycle.job.enqueued", "matched_count": len(matched)},
                )

        result.ledger_size = ledger.commit(result.new_listing_ids)

        logger.info(
            f"Notify cycle completed: {result.jobs_enqueued} jobs enqueued",
            extra={
                "event": "cycle.completed",
                "new_count": result.new_count,
                "subscriptions_seen": result.subscriptions_seen,
                "subscriptions_malformed": result.subscriptions_malformed,
                "jobs_enqueued": result.jobs_enqueued,
                "ledger_size": result.ledger_size,
            },
        )
    return result


def query_listings(
    store: SnapshotStore,
    condition: FilterCondition,
    start: int = 0,
    limit: int = MAX_QUERY_LIMIT,
) -> List[Listing]:
    """Page through the current snapshot filtered by ``condition``.

    Raises:
        ValueError: If start is negative or limit is outside 1..100
        SnapshotUnavailableError: If no snapshot exists
    """
    if start < 0:
        raise ValueError(f"start must be >= 0, got {start}")
    if not 1 <= limit <= MAX_QUERY_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_QUERY_LIMIT}, got {limit}")

    matched = ConditionMatcher(condition).filter(load_snapshot(store))
    return matched[start : start + limit]
