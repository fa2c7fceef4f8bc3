"""
Content-addressed blob storage.

Blobs are stored flat under the storage root, one file per sha256 hash:

    blobs/ab1234...

Every hash is validated before it is joined onto the root, so a malformed
hash can never name a path outside it. The store does not check that the
bytes hash to the key; callers verify before calling store().
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from ..errors import BlobNotFound
from ..events import validate_content_hash

logger = logging.getLogger(__name__)


@runtime_checkable
class BlobStore(Protocol):
    """Storage backend contract for blob bytes keyed by content hash."""

    def store(self, sha256: str, data: bytes) -> None:
        """Write blob bytes. Writing an existing hash again is idempotent."""
        ...

    def load(self, sha256: str) -> BinaryIO:
        """
        Open a blob for reading.

        Raises:
            BlobNotFound: If no blob is stored under the hash
        """
        ...

    def delete(self, sha256: str) -> None:
        """
        Remove a blob.

        Raises:
            BlobNotFound: If no blob is stored under the hash
        """
        ...

    def exists(self, sha256: str) -> bool:
        ...


class FilesystemBlobStore:
    """Blob store rooted at a local directory."""

    def __init__(self, root: Path):
        self.root = root

    def _ensure_dir(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def _blob_path(self, sha256: str) -> Path:
        return self.root / validate_content_hash(sha256)

    def store(self, sha256: str, data: bytes) -> None:
        blob_path = self._blob_path(sha256)
        self._ensure_dir()

        # Write atomically (write to temp, then rename)
        temp_path = blob_path.with_name(f".{blob_path.name}.{os.getpid()}.tmp")
        temp_path.write_bytes(data)
        temp_path.replace(blob_path)
        logger.debug("stored blob %s (%d bytes)", blob_path.name, len(data))

    def load(self, sha256: str) -> BinaryIO:
        blob_path = self._blob_path(sha256)
        try:
            return blob_path.open("rb")
        except FileNotFoundError as e:
            raise BlobNotFound(blob_path.name) from e

    def read_bytes(self, sha256: str) -> bytes:
        with self.load(sha256) as f:
            return f.read()

    def delete(self, sha256: str) -> None:
        blob_path = self._blob_path(sha256)
        try:
            blob_path.unlink()
        except FileNotFoundError as e:
            raise BlobNotFound(blob_path.name) from e
        logger.debug("deleted blob %s", blob_path.name)

    def exists(self, sha256: str) -> bool:
        return self._blob_path(sha256).is_file()

    def size(self, sha256: str) -> int:
        blob_path = self._blob_path(sha256)
        try:
            return blob_path.stat().st_size
        except FileNotFoundError as e:
            raise BlobNotFound(blob_path.name) from e

    def list_hashes(self) -> list[str]:
        """List every stored hash, skipping temp files and stray names."""
        if not self.root.exists():
            return []
        hashes = []
        for path in self.root.iterdir():
            if path.is_file() and len(path.name) == 64 and not path.name.startswith("."):
                hashes.append(path.name)
        return sorted(hashes)
