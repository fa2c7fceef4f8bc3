"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from blobgate.config import Settings
from blobgate.events import KIND_BLOB_DESCRIPTOR, KIND_FILE_METADATA, Event
from blobgate.policy.engine import PolicyEngine
from blobgate.policy.ownership import OwnershipResolver
from blobgate.service import BlobService
from blobgate.store.blob_index import BlobDescriptor, BlobIndex
from blobgate.store.blob_store import FilesystemBlobStore
from blobgate.store.event_store import MemoryEventStore

MB = 1024 * 1024


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with a single allow-listed pubkey and a 10 MB limit."""
    return Settings(
        allowed_users=frozenset({"pk1"}),
        max_file_size=10 * MB,
        blob_directory=tmp_path / "blobs",
        event_store_path=tmp_path / "events.jsonl",
        audit_log_path=tmp_path / "audit.log",
    )


@pytest.fixture
def event_store() -> MemoryEventStore:
    return MemoryEventStore()


@pytest.fixture
def blob_index(event_store: MemoryEventStore) -> BlobIndex:
    return BlobIndex(event_store)


@pytest.fixture
def resolver(event_store: MemoryEventStore, blob_index: BlobIndex) -> OwnershipResolver:
    return OwnershipResolver(event_store, blob_index)


@pytest.fixture
def engine(settings: Settings, resolver: OwnershipResolver) -> PolicyEngine:
    return PolicyEngine(settings, resolver)


@pytest.fixture
def blob_store(tmp_path: Path) -> FilesystemBlobStore:
    return FilesystemBlobStore(tmp_path / "blobs")


@pytest.fixture
def service(
    settings: Settings,
    engine: PolicyEngine,
    blob_store: FilesystemBlobStore,
    blob_index: BlobIndex,
) -> BlobService:
    return BlobService(engine, blob_store, blob_index, audit_path=settings.audit_log_path)


@pytest.fixture
def make_metadata() -> Callable[..., Event]:
    """Factory for kind 1063 file metadata events."""

    def _make(author: str, sha256: str, viewers: tuple[str, ...] = (), created_at: int = 1_700_000_000) -> Event:
        tags = [("x", sha256)] + [("p", v) for v in viewers]
        return Event(pubkey=author, created_at=created_at, kind=KIND_FILE_METADATA, tags=tuple(tags))

    return _make


@pytest.fixture
def credential() -> Callable[[str], Event]:
    """Factory for authorization events issued by a pubkey."""

    def _make(pubkey: str) -> Event:
        return Event(pubkey=pubkey, created_at=1_700_000_000, kind=KIND_BLOB_DESCRIPTOR, tags=(("t", "get"),))

    return _make


@pytest.fixture
def give_blob(blob_index: BlobIndex) -> Callable[[str, str], None]:
    """Record in the index that an owner holds a blob."""

    def _give(owner: str, sha256: str) -> None:
        blob_index.keep(BlobDescriptor(sha256=sha256, size=1, type="text/plain", uploaded=1_700_000_000, owner=owner))

    return _give
