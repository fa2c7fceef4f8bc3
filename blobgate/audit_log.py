"""
Audit log for blob mutations.

One JSON line per stored, released or erased blob, naming the hash, the
identity that asked and how many bytes hit or left the disk. Replaying
the log reconstructs each identity's storage footprint.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

BLOB_STORE = "blob.store"
BLOB_DELETE = "blob.delete"
BLOB_FORGET = "blob.forget"


@dataclass(frozen=True)
class AuditEntry:
    timestamp: str
    operation: str
    sha256: str
    pubkey: str
    bytes_written: int = 0
    bytes_erased: int = 0

    @classmethod
    def from_json(cls, line: str) -> AuditEntry:
        data = json.loads(line)
        return cls(
            timestamp=data["timestamp"],
            operation=data["operation"],
            sha256=data["sha256"],
            pubkey=data["pubkey"],
            bytes_written=int(data.get("bytes_written", 0)),
            bytes_erased=int(data.get("bytes_erased", 0)),
        )


def log_operation(
    log_path: Path,
    operation: str,
    sha256: str,
    pubkey: str,
    *,
    bytes_written: int = 0,
    bytes_erased: int = 0,
) -> AuditEntry:
    """Append one blob mutation to the log, creating the file if needed."""
    entry = AuditEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        operation=operation,
        sha256=sha256,
        pubkey=pubkey,
        bytes_written=bytes_written,
        bytes_erased=bytes_erased,
    )
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(asdict(entry)) + "\n")
    return entry


def read_audit_log(log_path: Path, last_n: int | None = None) -> list[AuditEntry]:
    """Entries oldest first; `last_n` keeps only the tail. Unparseable lines are skipped."""
    if not log_path.exists():
        return []

    entries: list[AuditEntry] = []
    with log_path.open("r", encoding="utf-8", errors="replace") as f:
        for line in f:
            if not line.strip():
                continue
            try:
                entries.append(AuditEntry.from_json(line))
            except (ValueError, KeyError, TypeError):
                continue

    if last_n is None:
        return entries
    return entries[-last_n:] if last_n > 0 else []


def format_audit_entry(entry: AuditEntry) -> str:
    lines = [f"[{entry.timestamp}] {entry.operation} {entry.sha256}", f"  by: {entry.pubkey}"]
    if entry.bytes_written:
        lines.append(f"  wrote: {entry.bytes_written} bytes")
    if entry.bytes_erased:
        lines.append(f"  erased: {entry.bytes_erased} bytes")
    return "\n".join(lines)
