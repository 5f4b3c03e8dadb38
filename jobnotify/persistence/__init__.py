"""Persistence layer: collaborator interfaces and their SQLite implementations.

Example:
    >>> from jobnotify.persistence import init_database, get_session, SqlSnapshotStore
    >>> init_database("sqlite:///./data/jobnotify.db")
    >>> with get_session() as session:
    ...     store = SqlSnapshotStore(session)
    ...     store.get("current_listings")
"""

from .base import DeliveryQueue, QueuedMessage, SnapshotStore, SubscriptionStore
from .database import close_database, get_engine, get_session, init_database
from .exceptions import DatabaseConnectionError, DataIntegrityError, PersistenceError
from .repositories import SqlDeliveryQueue, SqlSnapshotStore, SqlSubscriptionStore

__all__ = [
    "init_database",
    "get_session",
    "close_database",
    "get_engine",
    "SnapshotStore",
    "SubscriptionStore",
    "DeliveryQueue",
    "QueuedMessage",
    "SqlSnapshotStore",
    "SqlSubscriptionStore",
    "SqlDeliveryQueue",
    "PersistenceError",
    "DatabaseConnectionError",
    "DataIntegrityError",
]
