"""Tests for the authorization decisions."""

from __future__ import annotations

from typing import Iterator

import pytest

from blobgate.config import Settings
from blobgate.errors import StoreQueryFailure
from blobgate.events import KIND_BLOB_DESCRIPTOR, KIND_FILE_METADATA, Event, Filter
from blobgate.policy.engine import PolicyEngine
from blobgate.policy.ownership import OwnershipResolver
from blobgate.policy.verdict import Verdict
from blobgate.store.blob_index import BlobDescriptor, BlobIndex
from blobgate.store.event_store import JsonlEventStore, MemoryEventStore

MB = 1024 * 1024


class TestAuthorizeDownload:
    def test_missing_credential(self, engine: PolicyEngine):
        verdict = engine.authorize_download(None, "abc123")
        assert verdict == Verdict.deny("authorization credential missing", 403)

    def test_tagged_requester_of_owning_author_is_allowed(
        self, engine: PolicyEngine, event_store: MemoryEventStore, make_metadata, give_blob, credential
    ):
        event_store.save(make_metadata("pk3", "h1", ("pk2",)))
        give_blob("pk3", "h1")

        verdict = engine.authorize_download(credential("pk2"), "h1")
        assert verdict.allowed
        assert verdict.status == 200

    def test_author_no_longer_holding_blob_is_denied(
        self, engine: PolicyEngine, event_store: MemoryEventStore, make_metadata, give_blob, credential
    ):
        event_store.save(make_metadata("pk3", "h1", ("pk2",)))
        give_blob("pk3", "h2")

        verdict = engine.authorize_download(credential("pk2"), "h1")
        assert verdict == Verdict.deny("unauthorized access or no associated event found", 403)

    @pytest.mark.parametrize("sha256", ["h1", "0" * 64, "never-seen"])
    def test_hash_without_metadata_is_denied(self, engine: PolicyEngine, credential, sha256: str):
        verdict = engine.authorize_download(credential("pk1"), sha256)
        assert verdict.rejected
        assert "no associated event found" in verdict.reason

    def test_only_latest_event_per_author_counts(
        self, engine: PolicyEngine, event_store: MemoryEventStore, make_metadata, give_blob, credential
    ):
        event_store.save(make_metadata("pk3", "h1", ("pk2",), created_at=100))
        event_store.save(make_metadata("pk3", "h1", (), created_at=200))
        give_blob("pk3", "h1")

        assert engine.authorize_download(credential("pk2"), "h1").rejected

    def test_undecodable_store_line_does_not_break_the_check(
        self, settings: Settings, make_metadata, credential, tmp_path
    ):
        path = tmp_path / "events.jsonl"
        store = JsonlEventStore(path)
        index = BlobIndex(store)
        store.save(make_metadata("pk3", "h1", ("pk2",)))
        with path.open("ab") as f:
            f.write(b'{"pubkey": "\xff\xfe"}\n')
        index.keep(BlobDescriptor(sha256="h1", size=1, type="text/plain", uploaded=1, owner="pk3"))
        engine = PolicyEngine(settings, OwnershipResolver(store, index))

        assert engine.authorize_download(credential("pk2"), "h1").allowed
        assert engine.authorize_download(credential("pk2"), "a" * 64).status == 403

    def test_store_failure_fails_closed(self, settings: Settings, credential):
        class _FailingStore(MemoryEventStore):
            def query(self, filter: Filter) -> Iterator[Event]:
                raise StoreQueryFailure("connection reset")

        store = _FailingStore()
        engine = PolicyEngine(settings, OwnershipResolver(store, BlobIndex(store)))

        verdict = engine.authorize_download(credential("pk2"), "h1")
        assert verdict.rejected
        assert verdict.status == 500
        assert verdict.reason == "error querying events: connection reset"


class TestAuthorizeUpload:
    def test_allow_listed_upload_within_limit(self, engine: PolicyEngine, credential):
        verdict = engine.authorize_upload(credential("pk1"), 5 * MB, "jpg")
        assert verdict == Verdict.allow()

    def test_exactly_max_size_is_allowed(self, engine: PolicyEngine, credential):
        assert engine.authorize_upload(credential("pk1"), 10 * MB, "bin").allowed

    @pytest.mark.parametrize("size", [10 * MB + 1, 11 * MB, 10**12])
    def test_oversize_is_rejected_even_when_allow_listed(self, engine: PolicyEngine, credential, size: int):
        verdict = engine.authorize_upload(credential("pk1"), size, "bin")
        assert verdict == Verdict.deny("file too large", 413)

    def test_size_is_checked_before_identity(self, engine: PolicyEngine):
        verdict = engine.authorize_upload(None, 20 * MB, "bin")
        assert verdict.status == 413

    @pytest.mark.parametrize("size", [0, 1, 5 * MB, 10 * MB])
    def test_unlisted_identity_is_rejected_regardless_of_size(self, engine: PolicyEngine, credential, size: int):
        verdict = engine.authorize_upload(credential("pk2"), size, "png")
        assert verdict == Verdict.deny("unauthorized", 403)

    def test_missing_credential(self, engine: PolicyEngine):
        assert engine.authorize_upload(None, 10, "png") == Verdict.deny("unauthorized", 403)

    def test_extension_is_not_constrained(self, engine: PolicyEngine, credential):
        assert engine.authorize_upload(credential("pk1"), 10, "exe").allowed
        assert engine.authorize_upload(credential("pk1"), 10, None).allowed

    def test_allow_list_is_injected(self, resolver: OwnershipResolver, credential):
        engine = PolicyEngine(Settings(allowed_users=frozenset({"pk2"})), resolver)
        assert engine.authorize_upload(credential("pk2"), 1).allowed
        assert engine.authorize_upload(credential("pk1"), 1).rejected


class TestAuthorizeDelete:
    def test_allow_listed(self, engine: PolicyEngine, credential):
        assert engine.authorize_delete(credential("pk1"), "h1").allowed

    def test_not_allow_listed(self, engine: PolicyEngine, credential):
        assert engine.authorize_delete(credential("pk2"), "h1") == Verdict.deny("unauthorized", 403)

    def test_missing_credential(self, engine: PolicyEngine):
        assert engine.authorize_delete(None, "h1").rejected


class TestAuthorizeEventIngestion:
    def test_file_metadata_from_allow_listed_author(self, engine: PolicyEngine, make_metadata):
        assert engine.authorize_event_ingestion(make_metadata("pk1", "h1", ("pk2",))).allowed

    @pytest.mark.parametrize("kind", [0, 1, 3, KIND_BLOB_DESCRIPTOR])
    def test_other_kinds_are_rejected(self, engine: PolicyEngine, kind: int):
        event = Event(pubkey="pk1", created_at=1, kind=kind)
        verdict = engine.authorize_event_ingestion(event)
        assert verdict.rejected
        assert verdict.reason == "only file metadata events are allowed"

    def test_unlisted_author_is_rejected(self, engine: PolicyEngine, make_metadata):
        verdict = engine.authorize_event_ingestion(make_metadata("pk3", "h1", ("pk2",)))
        assert verdict.rejected
        assert verdict.reason == "unauthorized pubkey"

    def test_kind_is_checked_first(self, engine: PolicyEngine):
        verdict = engine.authorize_event_ingestion(Event(pubkey="pk9", created_at=1, kind=1))
        assert verdict.reason == "only file metadata events are allowed"


class TestExtraGates:
    def test_extra_gate_runs_after_builtin_gates(self, settings: Settings, resolver: OwnershipResolver, credential):
        seen = []

        def no_executables(cred, size, extension):
            seen.append(extension)
            if extension == "exe":
                return Verdict.deny("executables are not accepted", 415)
            return None

        engine = PolicyEngine(settings, resolver, extra_gates={"upload": [no_executables]})

        assert engine.authorize_upload(credential("pk1"), 10, "exe") == Verdict.deny("executables are not accepted", 415)
        assert engine.authorize_upload(credential("pk1"), 10, "png").allowed
        assert engine.authorize_upload(credential("pk2"), 10, "exe").reason == "unauthorized"
        assert seen == ["exe", "png"]

    def test_extra_ingest_gate(self, settings: Settings, resolver: OwnershipResolver, make_metadata):
        def require_hash(event: Event):
            if event.first_tag("x") is None:
                return Verdict.deny("missing x tag")
            return None

        engine = PolicyEngine(settings, resolver, extra_gates={"ingest": [require_hash]})
        bare = Event(pubkey="pk1", created_at=1, kind=KIND_FILE_METADATA)

        assert engine.authorize_event_ingestion(bare).reason == "missing x tag"
        assert engine.authorize_event_ingestion(make_metadata("pk1", "h1")).allowed

    def test_unknown_operation(self, settings: Settings, resolver: OwnershipResolver):
        with pytest.raises(ValueError, match="unknown operation"):
            PolicyEngine(settings, resolver, extra_gates={"rename": []})
