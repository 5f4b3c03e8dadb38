"""Collaborator interfaces consumed by the pipeline.

The pipeline only depends on these contracts. SQLAlchemy-backed
implementations live in ``repositories``; tests may substitute their own.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, List, Optional

from jobnotify.domain.models import DeliveryJob, Subscription, SubscriptionRecord


class SnapshotStore(ABC):
    """Key-value store for the listing snapshot, the ledger and view artifacts."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    def put(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Without ``ttl_seconds`` the entry never expires.
        """


class SubscriptionStore(ABC):
    """Source of subscriber configurations."""

    @abstractmethod
    def records(self) -> Iterator[SubscriptionRecord]:
        """Iterate over every stored subscription, condition still unparsed."""

    @abstractmethod
    def add(self, subscription: Subscription) -> None:
        """Persist a new subscription."""

    @abstractmethod
    def delete(self, subscription_id: str) -> bool:
        """Remove a subscription. Deleting a missing id is a no-op returning False."""


@dataclass(frozen=True)
class QueuedMessage:
    """A delivery job as seen by a consumer.

    Attributes:
        message_id: Queue-assigned id, used to ack or retry
        job: The delivery job payload
        attempts: 1-based delivery attempt count, including this one
    """

    message_id: str
    job: DeliveryJob
    attempts: int


class DeliveryQueue(ABC):
    """At-least-once queue between the notify cycle and the delivery worker."""

    @abstractmethod
    def enqueue(self, job: DeliveryJob) -> str:
        """Add a job and return its message id."""

    @abstractmethod
    def receive(self, max_messages: int) -> List[QueuedMessage]:
        """Lease up to ``max_messages`` visible messages, incrementing their attempts."""

    @abstractmethod
    def ack(self, message: QueuedMessage) -> None:
        """Mark a message as done. Acking an unknown message is a no-op."""

    @abstractmethod
    def retry(self, message: QueuedMessage, delay_seconds: int, error: Optional[str] = None) -> bool:
        """Schedule redelivery.

        Returns:
            False when the message exhausted its attempts and was dead-lettered
        """
