"""
Authorization decisions for blob requests and event ingestion.

Each operation is a PolicyChain of gates. Gates only read the request, the
injected Settings and the ownership resolver, so decisions for concurrent
requests never interact.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from ..config import Settings
from ..errors import StoreQueryFailure
from ..events import KIND_FILE_METADATA, Credential, Event
from .chain import GateFn, PolicyChain
from .ownership import OwnershipResolver
from .verdict import Verdict

logger = logging.getLogger(__name__)

REASON_CREDENTIAL_MISSING = "authorization credential missing"
REASON_NO_ASSOCIATED_EVENT = "unauthorized access or no associated event found"
REASON_FILE_TOO_LARGE = "file too large"
REASON_UNAUTHORIZED = "unauthorized"
REASON_KIND_NOT_ALLOWED = "only file metadata events are allowed"
REASON_UNAUTHORIZED_PUBKEY = "unauthorized pubkey"


class PolicyEngine:
    """
    Access-control decision engine.

    Args:
        settings: Immutable configuration (allow-list, size limit)
        resolver: Ownership resolver used by download checks
        extra_gates: Optional gates appended to an operation's chain,
            keyed by operation name ("download", "upload", "delete", "ingest")
    """

    def __init__(
        self,
        settings: Settings,
        resolver: OwnershipResolver,
        *,
        extra_gates: Mapping[str, Iterable[GateFn]] | None = None,
    ):
        self.settings = settings
        self.resolver = resolver

        chains = {
            "download": PolicyChain("download", [self._require_credential, self._require_ownership]),
            "upload": PolicyChain("upload", [self._enforce_size_limit, self._require_allow_listed]),
            "delete": PolicyChain("delete", [self._require_allow_listed]),
            "ingest": PolicyChain("ingest", [self._require_file_metadata_kind, self._require_allow_listed_author]),
        }
        for operation, gates in (extra_gates or {}).items():
            if operation not in chains:
                raise ValueError(f"unknown operation: {operation!r}")
            chains[operation] = chains[operation].extended(gates)
        self.chains: dict[str, PolicyChain] = chains

    # --- Gates ---

    def _require_credential(self, credential: Credential | None, content_hash: str) -> Verdict | None:
        if credential is None:
            return Verdict.deny(REASON_CREDENTIAL_MISSING, 403)
        return None

    def _require_ownership(self, credential: Credential, content_hash: str) -> Verdict | None:
        try:
            authorized = self.resolver.resolve(content_hash, credential.pubkey)
        except StoreQueryFailure as e:
            logger.error("event query failed while checking %s: %s", content_hash, e)
            return Verdict.deny(f"error querying events: {e}", 500)
        if not authorized:
            return Verdict.deny(REASON_NO_ASSOCIATED_EVENT, 403)
        return None

    def _enforce_size_limit(self, credential: Credential | None, size: int, extension: str | None) -> Verdict | None:
        if size > self.settings.max_file_size:
            logger.info("upload of %d bytes exceeds limit of %d", size, self.settings.max_file_size)
            return Verdict.deny(REASON_FILE_TOO_LARGE, 413)
        return None

    def _require_allow_listed(self, credential: Credential | None, *args: object) -> Verdict | None:
        if credential is None or not self.settings.is_allowed(credential.pubkey):
            return Verdict.deny(REASON_UNAUTHORIZED, 403)
        return None

    def _require_file_metadata_kind(self, event: Event) -> Verdict | None:
        if event.kind != KIND_FILE_METADATA:
            return Verdict.deny(REASON_KIND_NOT_ALLOWED, 403)
        return None

    def _require_allow_listed_author(self, event: Event) -> Verdict | None:
        if not self.settings.is_allowed(event.pubkey):
            return Verdict.deny(REASON_UNAUTHORIZED_PUBKEY, 403)
        return None

    # --- Decisions ---

    def authorize_download(self, credential: Credential | None, content_hash: str) -> Verdict:
        logger.debug("checking download authorization for %s", content_hash)
        return self.chains["download"].evaluate(credential, content_hash)

    def authorize_upload(self, credential: Credential | None, size: int, extension: str | None = None) -> Verdict:
        logger.debug("received upload of %d bytes", size)
        verdict = self.chains["upload"].evaluate(credential, size, extension)
        if verdict.allowed:
            logger.debug("upload ok to proceed")
        return verdict

    def authorize_delete(self, credential: Credential | None, content_hash: str) -> Verdict:
        return self.chains["delete"].evaluate(credential, content_hash)

    def authorize_event_ingestion(self, event: Event) -> Verdict:
        return self.chains["ingest"].evaluate(event)
