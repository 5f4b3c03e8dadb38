"""Notification ledger: the bounded record of already-notified listing ids.

The ledger is a JSON array of ids in insertion order (oldest first), kept in
the snapshot store under ``LEDGER_KEY``. Once it outgrows its capacity the
oldest ids are evicted first, regardless of how recently they were seen.
"""

import json
from typing import Iterable, List, Sequence

from jobnotify.domain.models import Listing
from jobnotify.logging import get_logger
from jobnotify.persistence.base import SnapshotStore

logger = get_logger(__name__, component="ledger")

LEDGER_KEY = "notified_listing_ids"
DEFAULT_CAPACITY = 50_000


class LedgerError(Exception):
    """The stored ledger cannot be read. Treating it as empty would re-notify everything."""


def diff_new(snapshot: Iterable[Listing], ledger_ids: Iterable[str]) -> List[Listing]:
    """Return the listings whose id is not in the ledger, in snapshot order."""
    known = set(ledger_ids)
    return [listing for listing in snapshot if listing.id not in known]


def append_bounded(existing: Sequence[str], new_ids: Iterable[str], capacity: int) -> List[str]:
    """Append unseen ids and evict from the front down to ``capacity``."""
    if capacity < 1:
        raise ValueError(f"Ledger capacity must be positive, got {capacity}")

    merged = list(existing)
    known = set(merged)
    for listing_id in new_ids:
        if listing_id not in known:
            known.add(listing_id)
            merged.append(listing_id)

    if len(merged) > capacity:
        merged = merged[-capacity:]
    return merged


class NotificationLedger:
    """Ledger bound to a snapshot store.

    ``load_ids`` and ``commit`` are a read-modify-write pair; callers running
    them concurrently must serialize them (see NotifyPipeline's notify lock).
    """

    def __init__(self, store: SnapshotStore, capacity: int = DEFAULT_CAPACITY):
        self.store = store
        self.capacity = capacity

    def load_ids(self) -> List[str]:
        """Return the ledger ids, oldest first. An absent ledger is empty.

        Raises:
            LedgerError: If the stored value is not a JSON array of strings
        """
        raw = self.store.get(LEDGER_KEY)
        if raw is None:
            return []

        try:
            ids = json.loads(raw)
        except ValueError as e:
            raise LedgerError(f"Stored ledger is not valid JSON: {e}") from e
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise LedgerError("Stored ledger must be a JSON array of strings")
        return ids

    def diff_new(self, snapshot: Iterable[Listing]) -> List[Listing]:
        """Listings of ``snapshot`` not yet notified."""
        return diff_new(snapshot, self.load_ids())

    def commit(self, new_ids: Iterable[str]) -> int:
        """Record ``new_ids`` as notified and return the resulting ledger size."""
        new_ids = list(new_ids)
        current = self.load_ids()
        updated = append_bounded(current, new_ids, self.capacity)
        evicted = len(current) + len(set(new_ids) - set(current)) - len(updated)

        self.store.put(LEDGER_KEY, json.dumps(updated).encode("utf-8"))

        logger.info(
            f"Ledger committed: {len(updated)} ids",
            extra={
                "event": "ledger.committed",
                "added": len(new_ids),
                "evicted": max(evicted, 0),
                "size": len(updated),
            },
        )
        return len(updated)
