"""
Error taxonomy for policy decisions and storage.

Policy checks never raise for a denial: they return a Verdict. These
exceptions exist for the places where a denial or a missing blob has to
cross a function boundary that returns something else (BlobService,
storage adapters).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .policy.verdict import Verdict


class BlobgateError(Exception):
    """Base class for all blobgate errors."""


class InvalidContentHash(BlobgateError, ValueError):
    """A content hash is not 64 lowercase hex characters."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"invalid content hash: {value!r}")


class BlobNotFound(BlobgateError, LookupError):
    """No blob is stored (or owned) under the requested hash."""

    def __init__(self, sha256: str):
        self.sha256 = sha256
        super().__init__(f"blob not found: {sha256}")


class StoreQueryFailure(BlobgateError):
    """The event store could not answer a query."""


class AccessDenied(BlobgateError):
    """A policy check rejected the request."""

    def __init__(self, verdict: "Verdict"):
        self.verdict = verdict
        super().__init__(verdict.reason)

    @property
    def status(self) -> int:
        return self.verdict.status

    @classmethod
    def from_verdict(cls, verdict: "Verdict") -> "AccessDenied":
        """Pick the most specific subclass for a deny verdict."""
        if verdict.status == 413:
            return QuotaExceeded(verdict)
        if verdict.reason == "authorization credential missing":
            return CredentialMissing(verdict)
        if verdict.status == 403:
            return Unauthorized(verdict)
        return cls(verdict)


class CredentialMissing(AccessDenied):
    """No authorization event accompanied the request."""


class Unauthorized(AccessDenied):
    """The credential's identity is not entitled to the operation."""


class QuotaExceeded(AccessDenied):
    """The upload is larger than the configured maximum."""
