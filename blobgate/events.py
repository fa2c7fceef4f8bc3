"""
Signed Nostr events, filters and content hashes.

Events are immutable once received. Signature validity is checked by the
relay before an event reaches this package; the id is recomputed here only
when a caller hands over an event without one.
"""

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Sequence

from .errors import InvalidContentHash

# Event kinds
KIND_FILE_METADATA = 1063
KIND_BLOB_DESCRIPTOR = 24242

_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


def validate_content_hash(value: str) -> str:
    """
    Normalize and validate a sha256 content hash.

    Returns:
        The lowercase hash

    Raises:
        InvalidContentHash: If the value is not 64 hex characters
    """
    if not isinstance(value, str):
        raise InvalidContentHash(repr(value))
    normalized = value.strip().lower()
    if not _HASH_RE.match(normalized):
        raise InvalidContentHash(value)
    return normalized


def is_content_hash(value: str) -> bool:
    try:
        validate_content_hash(value)
    except InvalidContentHash:
        return False
    return True


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def compute_event_id(
    pubkey: str,
    created_at: int,
    kind: int,
    tags: Sequence[Sequence[str]],
    content: str,
) -> str:
    """Compute the NIP-01 event id (sha256 of the canonical serialization)."""
    serialized = json.dumps(
        [0, pubkey, created_at, kind, [list(t) for t in tags], content],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return sha256_hex(serialized.encode("utf-8"))


def _coerce_tags(raw: Any) -> tuple[tuple[str, ...], ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    tags: list[tuple[str, ...]] = []
    for tag in raw:
        if isinstance(tag, (list, tuple)):
            tags.append(tuple(str(v) for v in tag))
    return tuple(tags)


@dataclass(frozen=True)
class Event:
    """
    A signed Nostr event.

    Used both for file metadata events (kind 1063) stored by the relay and
    for authorization credentials attached to blob requests.
    """

    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...] = field(default_factory=tuple)
    content: str = ""
    id: str = ""
    sig: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", _coerce_tags(self.tags))
        if not self.id:
            object.__setattr__(
                self,
                "id",
                compute_event_id(self.pubkey, self.created_at, self.kind, self.tags, self.content),
            )

    def tag_values(self, key: str) -> Iterator[str]:
        """Yield the value of every tag named `key`. Tags without a value are skipped."""
        for tag in self.tags:
            if len(tag) >= 2 and tag[0] == key:
                yield tag[1]

    def first_tag(self, key: str) -> str | None:
        return next(self.tag_values(key), None)

    def has_tag(self, key: str, value: str) -> bool:
        return any(v == value for v in self.tag_values(key))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the NIP-01 JSON object."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(t) for t in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    def to_json(self) -> str:
        """Serialize to JSON string (single line)."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Event:
        """Reconstruct from a NIP-01 JSON object."""
        return cls(
            pubkey=str(data["pubkey"]),
            created_at=int(data["created_at"]),
            kind=int(data["kind"]),
            tags=_coerce_tags(data.get("tags", [])),
            content=str(data.get("content", "")),
            id=str(data.get("id", "") or ""),
            sig=str(data.get("sig", "") or ""),
        )

    @classmethod
    def from_json(cls, line: str) -> Event:
        """Parse from JSON string."""
        return cls.from_dict(json.loads(line))


# The authorization event sent with blob requests is an ordinary event.
Credential = Event


@dataclass(frozen=True)
class Filter:
    """
    Event query filter.

    Empty fields do not constrain. `tags` maps a tag key (e.g. "x") to the
    accepted values; an event matches when it carries at least one of them.
    """

    ids: tuple[str, ...] = ()
    kinds: tuple[int, ...] = ()
    authors: tuple[str, ...] = ()
    tags: Mapping[str, Sequence[str]] = field(default_factory=dict)
    since: int | None = None
    until: int | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "ids", tuple(self.ids))
        object.__setattr__(self, "kinds", tuple(self.kinds))
        object.__setattr__(self, "authors", tuple(self.authors))
        object.__setattr__(self, "tags", {k: tuple(v) for k, v in dict(self.tags).items()})

    def matches(self, event: Event) -> bool:
        if self.ids and event.id not in self.ids:
            return False
        if self.kinds and event.kind not in self.kinds:
            return False
        if self.authors and event.pubkey not in self.authors:
            return False
        if self.since is not None and event.created_at < self.since:
            return False
        if self.until is not None and event.created_at > self.until:
            return False
        for key, values in self.tags.items():
            if not values:
                continue
            wanted = set(values)
            if not any(v in wanted for v in event.tag_values(key)):
                return False
        return True
