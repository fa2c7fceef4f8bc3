"""
Relay and blob protocol hook adapters.

The relay consults ordered lists of reject hooks: each returns a tuple
whose first element says whether to reject, and the first hook that
rejects ends the evaluation. These adapters expose PolicyEngine decisions
in exactly those shapes, and Relay runs the lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from .events import Credential, Event
from .policy.engine import PolicyEngine
from .store.event_store import EventStore

logger = logging.getLogger(__name__)

RejectEventHook = Callable[[Event], "tuple[bool, str]"]
RejectGetHook = Callable[["Credential | None", str], "tuple[bool, str, int]"]
RejectUploadHook = Callable[["Credential | None", int, str], "tuple[bool, str, int]"]
RejectDeleteHook = Callable[["Credential | None", str], "tuple[bool, str, int]"]


def reject_event(engine: PolicyEngine) -> RejectEventHook:
    def hook(event: Event) -> tuple[bool, str]:
        verdict = engine.authorize_event_ingestion(event)
        return (verdict.rejected, verdict.reason)

    return hook


def reject_get(engine: PolicyEngine) -> RejectGetHook:
    def hook(credential: Credential | None, sha256: str) -> tuple[bool, str, int]:
        return engine.authorize_download(credential, sha256).as_hook_tuple()

    return hook


def reject_upload(engine: PolicyEngine) -> RejectUploadHook:
    def hook(credential: Credential | None, size: int, extension: str) -> tuple[bool, str, int]:
        return engine.authorize_upload(credential, size, extension).as_hook_tuple()

    return hook


def reject_delete(engine: PolicyEngine) -> RejectDeleteHook:
    def hook(credential: Credential | None, sha256: str) -> tuple[bool, str, int]:
        return engine.authorize_delete(credential, sha256).as_hook_tuple()

    return hook


@dataclass
class Relay:
    """Event intake with ordered reject hooks in front of an event store."""

    event_store: EventStore
    reject_event: list[RejectEventHook] = field(default_factory=list)
    reject_get: list[RejectGetHook] = field(default_factory=list)
    reject_upload: list[RejectUploadHook] = field(default_factory=list)
    reject_delete: list[RejectDeleteHook] = field(default_factory=list)

    @classmethod
    def with_policy(cls, event_store: EventStore, engine: PolicyEngine) -> Relay:
        return cls(
            event_store=event_store,
            reject_event=[reject_event(engine)],
            reject_get=[reject_get(engine)],
            reject_upload=[reject_upload(engine)],
            reject_delete=[reject_delete(engine)],
        )

    def submit(self, event: Event) -> tuple[bool, str]:
        """
        Run ingestion hooks and store the event if none rejects it.

        Returns:
            (accepted, reason); reason is empty when accepted
        """
        for hook in self.reject_event:
            reject, reason = hook(event)
            if reject:
                logger.info("rejected event %s from %s: %s", event.id, event.pubkey, reason)
                return (False, reason)
        self.event_store.save(event)
        return (True, "")

    def check_get(self, credential: Credential | None, sha256: str) -> tuple[bool, str, int]:
        return _first_rejection(self.reject_get, credential, sha256)

    def check_upload(self, credential: Credential | None, size: int, extension: str = "") -> tuple[bool, str, int]:
        return _first_rejection(self.reject_upload, credential, size, extension)

    def check_delete(self, credential: Credential | None, sha256: str) -> tuple[bool, str, int]:
        return _first_rejection(self.reject_delete, credential, sha256)


def _first_rejection(hooks: list, *args: object) -> tuple[bool, str, int]:
    for hook in hooks:
        reject, reason, status = hook(*args)
        if reject:
            return (True, reason, status)
    return (False, "", 200)
