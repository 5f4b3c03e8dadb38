"""Result records for refresh, notify and delivery runs."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from jobnotify.notifications.models import DeliveryOutcome, DeliveryStatus


@dataclass
class EnqueuedJob:
    """One delivery job created by a notify cycle."""

    message_id: str
    subscription_id: str
    matched_count: int


@dataclass
class RefreshResult:
    """Outcome of a refresh cycle.

    Attributes:
        cycle_id: Correlation id shared by every log line of the cycle
        listing_count: Listings in the published snapshot
        had_errors: True when the refresh aborted; the old snapshot stays in effect
        error_message: Why it aborted
    """

    cycle_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    listing_count: int = 0
    had_errors: bool = False
    error_message: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


@dataclass
class NotifyCycleResult:
    """Outcome of a notify cycle.

    Attributes:
        cycle_id: Correlation id
        snapshot_size: Listings in the snapshot the cycle ran against
        new_listing_ids: Ids absent from the ledger at the start of the cycle
        subscriptions_seen: Subscriptions evaluated (0 when nothing was new)
        subscriptions_malformed: Subscriptions skipped because they failed to parse
        jobs: Delivery jobs enqueued
        ledger_size: Ledger size after the commit
        skipped: True when another cycle held the lock
        had_errors: True when the cycle aborted before committing
    """

    cycle_id: str
    snapshot_size: int = 0
    new_listing_ids: List[str] = field(default_factory=list)
    subscriptions_seen: int = 0
    subscriptions_malformed: int = 0
    jobs: List[EnqueuedJob] = field(default_factory=list)
    ledger_size: int = 0
    skipped: bool = False
    had_errors: bool = False
    error_message: Optional[str] = None

    @property
    def new_count(self) -> int:
        return len(self.new_listing_ids)

    @property
    def jobs_enqueued(self) -> int:
        return len(self.jobs)


@dataclass
class DeliveryRunResult:
    """Outcome of draining one batch from the delivery queue.

    ``errors`` lists storage failures; the affected messages have no outcome
    and come back once their lease expires.
    """

    outcomes: List[DeliveryOutcome] = field(default_factory=list)
    skipped: bool = False
    errors: List[str] = field(default_factory=list)

    def count(self, status: DeliveryStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def had_errors(self) -> bool:
        return bool(self.errors) or self.count(DeliveryStatus.DEAD) > 0
