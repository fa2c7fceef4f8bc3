"""Storage adapters: event store, blob bytes and the per-owner blob index."""

from .blob_index import BlobDescriptor, BlobIndex
from .blob_store import BlobStore, FilesystemBlobStore
from .event_store import EventStore, JsonlEventStore, MemoryEventStore

__all__ = [
    "BlobDescriptor",
    "BlobIndex",
    "BlobStore",
    "EventStore",
    "FilesystemBlobStore",
    "JsonlEventStore",
    "MemoryEventStore",
]
