"""SQLAlchemy implementations of the collaborator interfaces.

Repositories operate inside the caller's session and never commit; the
``get_session()`` context manager commits once the unit of work succeeds.
"""

import json
import logging
from datetime import timedelta
from typing import Iterator, List, Optional
from uuid import uuid4

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from jobnotify.domain.models import DeliveryJob, Subscription, SubscriptionRecord
from jobnotify.utils.timestamps import format_timestamp, utc_now

from .base import DeliveryQueue, QueuedMessage, SnapshotStore, SubscriptionStore
from .exceptions import DataIntegrityError, PersistenceError
from .schema import (
    MESSAGE_STATUS_DEAD,
    MESSAGE_STATUS_QUEUED,
    DeliveryMessageModel,
    KeyValueEntryModel,
    SubscriptionModel,
)

logger = logging.getLogger(__name__)


class SqlSnapshotStore(SnapshotStore):
    """Key-value entries with lazy expiry."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, key: str) -> Optional[bytes]:
        try:
            entry = self.session.get(KeyValueEntryModel, key)
            if entry is None:
                return None

            if entry.expires_at is not None and entry.expires_at <= format_timestamp(utc_now()):
                self.session.delete(entry)
                self.session.flush()
                return None

            return entry.value
        except SQLAlchemyError as e:
            logger.error(f"Error reading key {key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to read key {key}: {e}") from e

    def put(self, key: str, value: bytes, ttl_seconds: Optional[int] = None) -> None:
        now = utc_now()
        expires_at = (
            format_timestamp(now + timedelta(seconds=ttl_seconds)) if ttl_seconds else None
        )

        try:
            entry = self.session.get(KeyValueEntryModel, key)
            if entry is None:
                entry = KeyValueEntryModel(key=key)
                self.session.add(entry)
            entry.value = value
            entry.expires_at = expires_at
            entry.updated_at = format_timestamp(now)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error writing key {key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to write key {key}: {e}") from e

    def purge_expired(self) -> int:
        """Delete every expired entry and return how many were removed."""
        try:
            result = self.session.execute(
                delete(KeyValueEntryModel).where(
                    KeyValueEntryModel.expires_at.is_not(None),
                    KeyValueEntryModel.expires_at <= format_timestamp(utc_now()),
                )
            )
            self.session.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error purging expired entries: {e}", exc_info=True)
            raise PersistenceError(f"Failed to purge expired entries: {e}") from e


class SqlSubscriptionStore(SubscriptionStore):
    """Subscriptions table."""

    def __init__(self, session: Session):
        self.session = session

    def records(self) -> Iterator[SubscriptionRecord]:
        try:
            rows = self.session.execute(
                select(SubscriptionModel).order_by(
                    SubscriptionModel.created_at, SubscriptionModel.id
                )
            ).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error listing subscriptions: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list subscriptions: {e}") from e

        for row in rows:
            yield SubscriptionRecord(
                id=row.id, credential=row.credential, condition_json=row.condition
            )

    def add(self, subscription: Subscription) -> None:
        self.add_record(
            subscription.id,
            subscription.credential,
            json.dumps(subscription.condition.to_storage(), ensure_ascii=False),
        )

    def add_record(self, subscription_id: str, credential: str, condition_json: str) -> None:
        """Insert a subscription with an already-serialized condition."""
        try:
            self.session.add(
                SubscriptionModel(
                    id=subscription_id,
                    credential=credential,
                    condition=condition_json,
                    created_at=format_timestamp(utc_now()),
                )
            )
            self.session.flush()
        except IntegrityError as e:
            raise DataIntegrityError(f"Subscription {subscription_id} already exists") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding subscription {subscription_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add subscription: {e}") from e

    def get(self, subscription_id: str) -> Optional[SubscriptionRecord]:
        row = self.session.get(SubscriptionModel, subscription_id)
        if row is None:
            return None
        return SubscriptionRecord(id=row.id, credential=row.credential, condition_json=row.condition)

    def delete(self, subscription_id: str) -> bool:
        try:
            result = self.session.execute(
                delete(SubscriptionModel).where(SubscriptionModel.id == subscription_id)
            )
            self.session.flush()
            return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error(f"Error deleting subscription {subscription_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to delete subscription: {e}") from e


class SqlDeliveryQueue(DeliveryQueue):
    """Delivery queue on a table, with leases and dead-lettering.

    Args:
        session: Caller's session
        max_attempts: Attempts after which a failing message is dead-lettered
        visibility_timeout_seconds: Lease length for received messages
    """

    def __init__(self, session: Session, max_attempts: int = 4, visibility_timeout_seconds: int = 300):
        self.session = session
        self.max_attempts = max_attempts
        self.visibility_timeout_seconds = visibility_timeout_seconds

    def enqueue(self, job: DeliveryJob) -> str:
        now = format_timestamp(utc_now())
        message_id = uuid4().hex
        try:
            self.session.add(
                DeliveryMessageModel(
                    id=message_id,
                    payload=job.model_dump_json(),
                    attempts=0,
                    status=MESSAGE_STATUS_QUEUED,
                    available_at=now,
                    enqueued_at=now,
                )
            )
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error enqueuing job for {job.subscription_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to enqueue delivery job: {e}") from e
        return message_id

    def receive(self, max_messages: int) -> List[QueuedMessage]:
        now = utc_now()
        lease_until = format_timestamp(now + timedelta(seconds=self.visibility_timeout_seconds))

        try:
            rows = self.session.execute(
                select(DeliveryMessageModel)
                .where(
                    DeliveryMessageModel.status == MESSAGE_STATUS_QUEUED,
                    DeliveryMessageModel.available_at <= format_timestamp(now),
                )
                .order_by(DeliveryMessageModel.available_at, DeliveryMessageModel.enqueued_at)
                .limit(max_messages)
            ).scalars().all()

            messages = []
            for row in rows:
                # Visible again after the terminal attempt: its lease ran out
                # without an ack or retry.
                if row.attempts >= self.max_attempts:
                    row.status = MESSAGE_STATUS_DEAD
                    row.last_error = "lease expired on terminal attempt"
                    logger.error(
                        f"Dead-lettering delivery message {row.id} after {row.attempts} attempts",
                        extra={
                            "event": "queue.message.lease_exhausted",
                            "message_id": row.id,
                            "attempts": row.attempts,
                        },
                    )
                    continue

                row.attempts += 1
                row.available_at = lease_until
                try:
                    job = DeliveryJob.model_validate_json(row.payload)
                except ValidationError as e:
                    row.status = MESSAGE_STATUS_DEAD
                    row.last_error = f"Unreadable payload: {e}"
                    logger.error(
                        f"Dead-lettering unreadable delivery message {row.id}",
                        extra={"event": "queue.message.unreadable", "message_id": row.id},
                    )
                    continue
                messages.append(QueuedMessage(message_id=row.id, job=job, attempts=row.attempts))

            self.session.flush()
            return messages
        except SQLAlchemyError as e:
            logger.error(f"Error receiving delivery messages: {e}", exc_info=True)
            raise PersistenceError(f"Failed to receive delivery messages: {e}") from e

    def ack(self, message: QueuedMessage) -> None:
        try:
            self.session.execute(
                delete(DeliveryMessageModel).where(DeliveryMessageModel.id == message.message_id)
            )
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error acking message {message.message_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to ack message: {e}") from e

    def retry(self, message: QueuedMessage, delay_seconds: int, error: Optional[str] = None) -> bool:
        try:
            row = self.session.get(DeliveryMessageModel, message.message_id)
            if row is None:
                return False

            row.last_error = error
            if row.attempts >= self.max_attempts:
                row.status = MESSAGE_STATUS_DEAD
                self.session.flush()
                return False

            row.available_at = format_timestamp(utc_now() + timedelta(seconds=delay_seconds))
            self.session.flush()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Error scheduling retry for {message.message_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to schedule retry: {e}") from e

    def pending_count(self) -> int:
        """Messages still queued (leased or visible)."""
        return len(
            self.session.execute(
                select(DeliveryMessageModel.id).where(
                    DeliveryMessageModel.status == MESSAGE_STATUS_QUEUED
                )
            ).all()
        )

    def dead_letters(self) -> List[DeliveryMessageModel]:
        """Messages that exhausted their attempts."""
        return list(
            self.session.execute(
                select(DeliveryMessageModel).where(
                    DeliveryMessageModel.status == MESSAGE_STATUS_DEAD
                )
            ).scalars().all()
        )
