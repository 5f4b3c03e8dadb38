"""Pipeline entry points bound to database sessions."""

import json
import threading
from typing import Optional
from uuid import uuid4

from jobnotify.config.environment import EnvironmentConfig
from jobnotify.config.models import AppConfig
from jobnotify.domain.models import FilterCondition, Subscription
from jobnotify.feed.exceptions import FeedError
from jobnotify.ledger.service import LedgerError, NotificationLedger
from jobnotify.logging import get_logger
from jobnotify.logging.context import log_context
from jobnotify.normalization.service import ListingNormalizer
from jobnotify.notifications.service import DeliveryWorker
from jobnotify.notifications.views import ViewArtifactStore
from jobnotify.persistence.database import get_session
from jobnotify.persistence.exceptions import PersistenceError
from jobnotify.persistence.repositories import (
    SqlDeliveryQueue,
    SqlSnapshotStore,
    SqlSubscriptionStore,
)
from jobnotify.utils.timestamps import utc_now
from jobnotify.utils.tokens import generate_token

from . import cycle
from .exceptions import PipelineError
from .models import DeliveryRunResult, NotifyCycleResult, RefreshResult

logger = get_logger(__name__, component="pipeline")


class NotifyPipeline:
    """
    Runs the refresh, notify and delivery stages against the configured database.

    Each stage opens its own session. The notify cycle enqueues jobs and
    commits the ledger inside one session, so both land or neither does.
    Failures are captured in the returned result rather than raised, so the
    scheduler keeps running.
    """

    def __init__(
        self,
        app_config: AppConfig,
        env_config: EnvironmentConfig,
        normalizer: ListingNormalizer,
        worker: DeliveryWorker,
    ):
        self.app_config = app_config
        self.env_config = env_config
        self.normalizer = normalizer
        self.worker = worker
        self._notify_lock = threading.Lock()
        self._delivery_lock = threading.Lock()

    def _queue(self, session) -> SqlDeliveryQueue:
        delivery = self.app_config.delivery
        return SqlDeliveryQueue(
            session,
            max_attempts=delivery.max_attempts,
            visibility_timeout_seconds=delivery.visibility_timeout_seconds,
        )

    def refresh_listings(self) -> RefreshResult:
        """Fetch the feed, replace the current snapshot and purge expired view artifacts."""
        cycle_id = uuid4().hex
        try:
            with get_session() as session:
                store = SqlSnapshotStore(session)
                result = cycle.refresh_listings(self.normalizer, store, cycle_id=cycle_id)
                purged = store.purge_expired()
            if purged:
                logger.info(
                    f"Purged {purged} expired entries",
                    extra={"event": "refresh.purged", "count": purged},
                )
            return result
        except (FeedError, PersistenceError) as e:
            with log_context(cycle_id=cycle_id):
                logger.error(
                    f"Refresh failed, previous snapshot kept: {e}",
                    extra={"event": "refresh.failed", "error_type": type(e).__name__},
                )
            now = utc_now()
            return RefreshResult(
                cycle_id=cycle_id,
                started_at=now,
                finished_at=now,
                had_errors=True,
                error_message=str(e),
            )

    def run_notify_cycle(self) -> NotifyCycleResult:
        """Run one notify cycle unless another one is in progress."""
        cycle_id = uuid4().hex

        if not self._notify_lock.acquire(blocking=False):
            with log_context(cycle_id=cycle_id):
                logger.warning(
                    "Notify cycle skipped: previous cycle still in progress",
                    extra={"event": "cycle.skipped", "reason": "lock_held"},
                )
            return NotifyCycleResult(cycle_id=cycle_id, skipped=True)

        try:
            with get_session() as session:
                store = SqlSnapshotStore(session)
                snapshot = cycle.load_snapshot(store)
                return cycle.run_notify_cycle(
                    snapshot,
                    SqlSubscriptionStore(session),
                    NotificationLedger(store, capacity=self.app_config.ledger.capacity),
                    self._queue(session),
                    cycle_id=cycle_id,
                )
        except (PipelineError, LedgerError, PersistenceError) as e:
            with log_context(cycle_id=cycle_id):
                logger.error(
                    f"Notify cycle aborted, ledger unchanged: {e}",
                    extra={"event": "cycle.failed", "error_type": type(e).__name__},
                )
            return NotifyCycleResult(cycle_id=cycle_id, had_errors=True, error_message=str(e))
        finally:
            self._notify_lock.release()

    def handle_delivery_batch(self, max_messages: Optional[int] = None) -> DeliveryRunResult:
        """Lease up to ``max_messages`` jobs and deliver them."""
        if not self._delivery_lock.acquire(blocking=False):
            logger.debug(
                "Delivery batch skipped: previous batch still running",
                extra={"event": "delivery.batch.skipped"},
            )
            return DeliveryRunResult(skipped=True)

        try:
            # Leases are committed before any message is sent, so a crash
            # mid-batch leads to redelivery once the lease runs out.
            try:
                with get_session() as session:
                    messages = self._queue(session).receive(
                        max_messages or self.app_config.delivery.batch_size
                    )
            except PersistenceError as e:
                logger.error(
                    f"Could not lease delivery jobs: {e}",
                    extra={"event": "delivery.batch.failed"},
                )
                return DeliveryRunResult(errors=[str(e)])

            if not messages:
                return DeliveryRunResult()

            result = DeliveryRunResult()
            # One session per message: a storage failure on one job rolls back
            # only that job, which stays leased and is redelivered later.
            for message in messages:
                try:
                    with get_session() as session:
                        result.outcomes.append(
                            self.worker.handle_message(
                                message,
                                self._queue(session),
                                SqlSubscriptionStore(session),
                                ViewArtifactStore(SqlSnapshotStore(session)),
                            )
                        )
                except PersistenceError as e:
                    logger.error(
                        f"Storage failure while handling message {message.message_id}: {e}",
                        extra={"event": "delivery.message.failed", "message_id": message.message_id},
                    )
                    result.errors.append(f"{message.message_id}: {e}")

            self.worker.log_batch_summary(result.outcomes)
            return result
        finally:
            self._delivery_lock.release()

    def subscribe(self, credential: str, condition: FilterCondition) -> Subscription:
        """Store a new subscription and send the confirmation message.

        Raises:
            NotificationError: If the confirmation cannot be sent; nothing is stored
        """
        subscription = Subscription(
            id=generate_token(), credential=credential, condition=condition
        )
        self.worker.send_confirmation(subscription)

        with get_session() as session:
            SqlSubscriptionStore(session).add(subscription)

        logger.info(
            f"Subscription {subscription.id} created",
            extra={
                "event": "subscription.created",
                "subscription_id": subscription.id,
                "condition": json.dumps(condition.to_storage(), ensure_ascii=False),
            },
        )
        return subscription

    def query_listings(self, condition: FilterCondition, start: int = 0, limit: int = 100):
        """Page through current listings matching ``condition``."""
        with get_session() as session:
            return cycle.query_listings(SqlSnapshotStore(session), condition, start, limit)
