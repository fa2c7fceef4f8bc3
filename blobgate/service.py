"""
Blob request handling: policy first, then storage.

BlobService is the single path by which blob bytes are written, read or
erased. Every call is authorized by the PolicyEngine before any storage
is touched, and every mutation is recorded in the audit log.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import BinaryIO

from .audit_log import BLOB_DELETE, BLOB_FORGET, BLOB_STORE, log_operation
from .config import Settings
from .errors import AccessDenied, BlobNotFound, Unauthorized
from .events import Credential, sha256_hex, validate_content_hash
from .policy.engine import REASON_UNAUTHORIZED, PolicyEngine
from .policy.ownership import OwnershipResolver
from .policy.verdict import Verdict
from .store.blob_index import BlobDescriptor, BlobIndex
from .store.blob_store import BlobStore, FilesystemBlobStore
from .store.event_store import EventStore, JsonlEventStore

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def _check(verdict: Verdict) -> None:
    if verdict.rejected:
        raise AccessDenied.from_verdict(verdict)


def _issuer(credential: Credential | None) -> str:
    if credential is None:
        raise Unauthorized(Verdict.deny(REASON_UNAUTHORIZED))
    return credential.pubkey


class BlobService:
    """
    Upload, download, delete and list blobs on behalf of credential holders.

    Args:
        engine: Policy engine deciding every request
        blob_store: Where blob bytes live
        blob_index: Per-owner record of uploaded blobs
        audit_path: Audit log file; None disables audit logging
    """

    def __init__(
        self,
        engine: PolicyEngine,
        blob_store: BlobStore,
        blob_index: BlobIndex,
        audit_path: Path | None = None,
    ):
        self.engine = engine
        self.blob_store = blob_store
        self.blob_index = blob_index
        self.audit_path = audit_path

    def _audit(self, operation: str, sha256: str, pubkey: str, **byte_counts: int) -> None:
        if self.audit_path is not None:
            log_operation(self.audit_path, operation, sha256, pubkey, **byte_counts)

    def upload(
        self,
        credential: Credential | None,
        data: bytes,
        *,
        mime_type: str | None = None,
        extension: str | None = None,
    ) -> BlobDescriptor:
        """
        Store `data` for the credential's issuer.

        Returns:
            The descriptor recorded in the index

        Raises:
            AccessDenied: If the upload policy rejects the request
        """
        _check(self.engine.authorize_upload(credential, len(data), extension))
        owner = _issuer(credential)

        sha256 = sha256_hex(data)
        self.blob_store.store(sha256, data)
        descriptor = BlobDescriptor(
            sha256=sha256,
            size=len(data),
            type=mime_type or DEFAULT_MIME_TYPE,
            uploaded=int(time.time()),
            owner=owner,
        )
        self.blob_index.keep(descriptor)
        logger.info("stored blob %s (%d bytes) for %s", sha256, len(data), owner)
        self._audit(BLOB_STORE, sha256, owner, bytes_written=len(data))
        return descriptor

    def download(self, credential: Credential | None, sha256: str) -> BinaryIO:
        """
        Open a blob for the requester.

        Raises:
            AccessDenied: If the download policy rejects the request
            BlobNotFound: If the blob bytes are not stored
        """
        _check(self.engine.authorize_download(credential, sha256))
        return self.blob_store.load(validate_content_hash(sha256))

    def delete(self, credential: Credential | None, sha256: str) -> bool:
        """
        Drop the issuer's copy of a blob.

        Bytes are erased only when no other owner still lists the blob. The
        issuer's index record is dropped last, so a failed erase leaves the
        blob owned and a later delete can retry it.

        Returns:
            True if the blob bytes were erased

        Raises:
            AccessDenied: If the delete policy rejects the request
            InvalidContentHash: If an authorized caller sends a malformed hash
            BlobNotFound: If the issuer does not own the blob, or its bytes are gone
        """
        _check(self.engine.authorize_delete(credential, sha256))
        pubkey = _issuer(credential)
        sha256 = validate_content_hash(sha256)

        if not self.blob_index.owns(pubkey, sha256):
            raise BlobNotFound(sha256)

        if self.blob_index.owners(sha256) - {pubkey}:
            self.blob_index.forget(sha256, pubkey)
            logger.info("%s released %s; other owners remain", pubkey, sha256)
            self._audit(BLOB_FORGET, sha256, pubkey)
            return False

        size = self.blob_store.size(sha256)
        self.blob_store.delete(sha256)
        self.blob_index.forget(sha256, pubkey)
        logger.info("deleted blob %s (%d bytes)", sha256, size)
        self._audit(BLOB_DELETE, sha256, pubkey, bytes_erased=size)
        return True

    def list(self, pubkey: str) -> list[BlobDescriptor]:
        return list(self.blob_index.list(pubkey))


def build_engine(settings: Settings, event_store: EventStore) -> PolicyEngine:
    return PolicyEngine(settings, OwnershipResolver(event_store, BlobIndex(event_store)))


def build_service(settings: Settings, event_store: EventStore | None = None) -> BlobService:
    """Wire the default stores, resolver and engine from settings."""
    event_store = event_store if event_store is not None else JsonlEventStore(settings.event_store_path)
    blob_index = BlobIndex(event_store)
    return BlobService(
        PolicyEngine(settings, OwnershipResolver(event_store, blob_index)),
        FilesystemBlobStore(settings.blob_directory),
        blob_index,
        audit_path=settings.audit_log_path,
    )
