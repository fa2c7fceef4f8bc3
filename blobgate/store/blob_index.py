"""
Per-owner blob index kept in the event store.

Each (owner, blob) pair is recorded as a kind 24242 event authored by the
owner, carrying the hash in an "x" tag plus "size" and "type" tags. Two
owners uploading the same bytes produce two index events for one stored
blob.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator

from ..events import KIND_BLOB_DESCRIPTOR, Event, Filter
from .event_store import EventStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlobDescriptor:
    """What the index knows about one owner's blob."""

    sha256: str
    size: int
    type: str
    uploaded: int
    owner: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "sha256": self.sha256,
            "size": self.size,
            "type": self.type,
            "uploaded": self.uploaded,
            "owner": self.owner,
        }

    def to_event(self) -> Event:
        return Event(
            pubkey=self.owner,
            created_at=self.uploaded,
            kind=KIND_BLOB_DESCRIPTOR,
            tags=(
                ("x", self.sha256),
                ("size", str(self.size)),
                ("type", self.type),
            ),
        )

    @classmethod
    def from_event(cls, event: Event) -> BlobDescriptor | None:
        """Parse an index event. Returns None for events missing the hash."""
        sha256 = event.first_tag("x")
        if not sha256:
            return None
        try:
            size = int(event.first_tag("size") or 0)
        except ValueError:
            size = 0
        return cls(
            sha256=sha256,
            size=size,
            type=event.first_tag("type") or "application/octet-stream",
            uploaded=event.created_at,
            owner=event.pubkey,
        )


class BlobIndex:
    """Ownership listing for stored blobs."""

    def __init__(self, event_store: EventStore):
        self.event_store = event_store

    def _events(self, *, owner: str | None = None, sha256: str | None = None) -> Iterator[Event]:
        return self.event_store.query(
            Filter(
                kinds=(KIND_BLOB_DESCRIPTOR,),
                authors=(owner,) if owner else (),
                tags={"x": [sha256]} if sha256 else {},
            )
        )

    def keep(self, descriptor: BlobDescriptor) -> None:
        """Record that `descriptor.owner` holds the blob."""
        if self.owns(descriptor.owner, descriptor.sha256):
            return
        self.event_store.save(descriptor.to_event())

    def list(self, owner: str) -> Iterator[BlobDescriptor]:
        """Lazily yield every blob recorded for `owner`, newest first."""
        for event in self._events(owner=owner):
            descriptor = BlobDescriptor.from_event(event)
            if descriptor is not None:
                yield descriptor

    def owns(self, owner: str, sha256: str) -> bool:
        """True if `owner` lists `sha256`. Stops at the first match."""
        for descriptor in self.list(owner):
            if descriptor.sha256 == sha256:
                return True
        return False

    def get(self, sha256: str) -> BlobDescriptor | None:
        """Return the earliest recorded descriptor for a hash."""
        descriptors = [
            d for d in (BlobDescriptor.from_event(e) for e in self._events(sha256=sha256)) if d is not None
        ]
        if not descriptors:
            return None
        return min(descriptors, key=lambda d: (d.uploaded, d.owner))

    def owners(self, sha256: str) -> set[str]:
        return {e.pubkey for e in self._events(sha256=sha256)}

    def forget(self, sha256: str, owner: str) -> bool:
        """Drop `owner`'s record of a blob. Returns False if there was none."""
        removed = False
        for event in list(self._events(owner=owner, sha256=sha256)):
            removed = self.event_store.delete(event) or removed
        if removed:
            logger.debug("forgot blob %s for %s", sha256, owner)
        return removed
