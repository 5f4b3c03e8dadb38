"""View artifacts: time-limited copies of a job's full match set.

A view is written once by the delivery worker and read by the external
viewer; it expires through the snapshot store's TTL.
"""

from typing import List

from pydantic import TypeAdapter, ValidationError

from jobnotify.domain.models import Listing
from jobnotify.logging import get_logger
from jobnotify.persistence.base import SnapshotStore
from jobnotify.utils.tokens import generate_token

logger = get_logger(__name__, component="views")

VIEW_KEY_PREFIX = "view:"

_listings_adapter = TypeAdapter(List[Listing])


def view_key(view_id: str) -> str:
    return f"{VIEW_KEY_PREFIX}{view_id}"


class ViewArtifactStore:
    """Creates and reads view artifacts in a snapshot store."""

    def __init__(self, store: SnapshotStore):
        self.store = store

    def create(self, listings: List[Listing], ttl_seconds: int) -> str:
        """Materialize ``listings`` under a fresh random id and return the id."""
        view_id = generate_token()
        self.store.put(view_key(view_id), _listings_adapter.dump_json(listings), ttl_seconds)
        logger.debug(
            f"View artifact {view_id} created",
            extra={"event": "view.created", "view_id": view_id, "count": len(listings)},
        )
        return view_id

    def load(self, view_id: str) -> List[Listing]:
        """Listings of a view; empty when it never existed, expired or is unreadable."""
        raw = self.store.get(view_key(view_id))
        if raw is None:
            return []
        try:
            return _listings_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(
                f"View artifact {view_id} is unreadable: {e}",
                extra={"event": "view.unreadable", "view_id": view_id},
            )
            return []


def load_view(store: SnapshotStore, view_id: str) -> List[Listing]:
    """Read a view artifact straight from ``store``."""
    return ViewArtifactStore(store).load(view_id)
