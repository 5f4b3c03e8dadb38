"""Database schema: ORM models for the key-value, subscription and queue tables.

Timestamps are stored as ISO-8601 UTC strings (see utils.timestamps).
"""

import logging

from sqlalchemy import Column, Index, Integer, LargeBinary, String, Text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

Base = declarative_base()

MESSAGE_STATUS_QUEUED = "queued"
MESSAGE_STATUS_DEAD = "dead"


class KeyValueEntryModel(Base):
    """Opaque values keyed by name, with optional expiry."""

    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True, nullable=False)
    value = Column(LargeBinary, nullable=False)
    expires_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_kv_expires_at", "expires_at"),)


class SubscriptionModel(Base):
    """Subscriber configuration. ``condition`` holds the raw JSON text."""

    __tablename__ = "subscriptions"

    id = Column(String(64), primary_key=True, nullable=False)
    credential = Column(Text, nullable=False)
    condition = Column(Text, nullable=False)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_subscriptions_created_at", "created_at"),)


class DeliveryMessageModel(Base):
    """Queued delivery job.

    ``available_at`` doubles as the visibility lease: a received message is
    pushed into the future and reappears if it is neither acked nor retried.
    """

    __tablename__ = "delivery_messages"

    id = Column(String(64), primary_key=True, nullable=False)
    payload = Column(Text, nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=MESSAGE_STATUS_QUEUED)
    available_at = Column(String(50), nullable=False)
    enqueued_at = Column(String(50), nullable=False)
    last_error = Column(Text, nullable=True)

    __table_args__ = (Index("idx_delivery_status_available", "status", "available_at"),)


def create_schema(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(engine)
    logger.debug("Database schema ensured")
