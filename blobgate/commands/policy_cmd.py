"""Policy CLI commands: event ingestion and authorization checks."""

from __future__ import annotations

import json
import sys
from pathlib import Path

from rich.console import Console

from ..config import Settings
from ..events import Credential, Event
from ..hooks import Relay
from ..policy.verdict import Verdict
from ..service import build_engine
from ..store.event_store import JsonlEventStore


def load_event(path: Path) -> Event:
    """Load an event from a JSON file ("-" reads stdin)."""
    raw = sys.stdin.read() if str(path) == "-" else path.read_text(encoding="utf-8")
    return Event.from_dict(json.loads(raw))


def read_event(path: Path | None) -> Event | None:
    """Like load_event, but no path means no credential."""
    if path is None:
        return None
    return load_event(path)


def _engine(settings: Settings):
    return build_engine(settings, JsonlEventStore(settings.event_store_path))


def _print_verdict(operation: str, verdict: Verdict, *, output_json: bool = False) -> int:
    if output_json:
        print(json.dumps({"operation": operation, **verdict.to_dict()}))
    elif verdict.allowed:
        Console().print(f"{operation}: allowed ({verdict.status})", style="green")
    else:
        Console(stderr=True).print(f"{operation}: denied ({verdict.status}) {verdict.reason}", style="bold red")
    return 0 if verdict.allowed else 1


def run_ingest(settings: Settings, event_path: Path) -> int:
    """Submit an event through the relay ingestion hooks.

    Returns:
        Exit code (0 = stored, 1 = rejected)
    """
    event = load_event(event_path)
    event_store = JsonlEventStore(settings.event_store_path)
    engine = build_engine(settings, event_store)
    relay = Relay.with_policy(event_store, engine)

    accepted, reason = relay.submit(event)
    if not accepted:
        Console(stderr=True).print(f"Rejected {event.id}: {reason}", style="bold red")
        return 1
    Console().print(f"Stored {event.id}", style="green")
    return 0


def run_check_download(
    settings: Settings, sha256: str, credential: Credential | None, *, output_json: bool = False
) -> int:
    engine = _engine(settings)
    return _print_verdict("download", engine.authorize_download(credential, sha256), output_json=output_json)


def run_check_upload(
    settings: Settings,
    size: int,
    credential: Credential | None,
    *,
    extension: str | None = None,
    output_json: bool = False,
) -> int:
    engine = _engine(settings)
    return _print_verdict("upload", engine.authorize_upload(credential, size, extension), output_json=output_json)


def run_check_delete(
    settings: Settings, sha256: str, credential: Credential | None, *, output_json: bool = False
) -> int:
    engine = _engine(settings)
    return _print_verdict("delete", engine.authorize_delete(credential, sha256), output_json=output_json)
