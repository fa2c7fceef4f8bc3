"""
Ownership resolution for blob downloads.

A requester may fetch a blob when some author's *current* file metadata
event for that hash names the requester in a "p" tag, and that author
still lists the blob in their own index. Only each author's latest
metadata event counts, so an author revokes access by publishing a newer
event without the requester's "p" tag.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..errors import BlobgateError, StoreQueryFailure
from ..events import KIND_FILE_METADATA, Event, Filter
from ..store.blob_index import BlobIndex
from ..store.event_store import EventStore

logger = logging.getLogger(__name__)


def latest_per_author(events: Iterable[Event]) -> list[Event]:
    """
    Reduce events to one per author: the one with the greatest created_at.

    Equal timestamps resolve to the lowest event id. Output is ordered by
    author so callers iterate deterministically.
    """
    latest: dict[str, Event] = {}
    for event in events:
        current = latest.get(event.pubkey)
        if current is None or _newer(event, current):
            latest[event.pubkey] = event
    return [latest[pubkey] for pubkey in sorted(latest)]


def _newer(event: Event, current: Event) -> bool:
    if event.created_at != current.created_at:
        return event.created_at > current.created_at
    return event.id < current.id


def is_pubkey_tagged(event: Event, pubkey: str) -> bool:
    """True if any "p" tag on the event carries `pubkey`. Tags without a value never match."""
    return event.has_tag("p", pubkey)


class OwnershipResolver:
    """Decide whether a requester is entitled to a blob via metadata events."""

    def __init__(self, event_store: EventStore, blob_index: BlobIndex):
        self.event_store = event_store
        self.blob_index = blob_index

    def metadata_events(self, content_hash: str) -> list[Event]:
        """
        Fetch every file metadata event referencing `content_hash`.

        Raises:
            StoreQueryFailure: If the event store query fails
        """
        event_filter = Filter(kinds=(KIND_FILE_METADATA,), tags={"x": [content_hash]})
        try:
            return list(self.event_store.query(event_filter))
        except StoreQueryFailure:
            raise
        except (OSError, BlobgateError) as e:
            raise StoreQueryFailure(str(e)) from e

    def author_owns_blob(self, author: str, content_hash: str) -> bool:
        try:
            return self.blob_index.owns(author, content_hash)
        except (OSError, BlobgateError) as e:
            logger.warning("could not list blobs for %s: %s", author, e)
            return False

    def resolve(self, content_hash: str, requester: str) -> bool:
        events = latest_per_author(self.metadata_events(content_hash))
        logger.debug("found %d metadata events for %s", len(events), content_hash)

        for event in events:
            if not is_pubkey_tagged(event, requester):
                continue
            if self.author_owns_blob(event.pubkey, content_hash):
                logger.debug("%s granted %s access to %s", event.pubkey, requester, content_hash)
                return True
            logger.debug("%s tags %s but does not hold %s", event.pubkey, requester, content_hash)
        return False
