"""Blob CLI commands: put, get, rm, ls and the audit log."""

from __future__ import annotations

import json
import mimetypes
import shutil
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..audit_log import format_audit_entry, read_audit_log
from ..config import Settings
from ..errors import AccessDenied, BlobgateError
from ..events import Credential
from ..service import build_service


def _report_error(e: BlobgateError) -> int:
    err = Console(stderr=True)
    if isinstance(e, AccessDenied):
        err.print(f"Denied ({e.status}): {e.verdict.reason}", style="bold red")
    else:
        err.print(str(e), style="bold red")
    return 1


def run_blob_put(settings: Settings, file_path: Path, credential: Credential | None, *, mime_type: str | None = None) -> int:
    """Upload a file as a blob.

    Returns:
        Exit code (0 = stored, 1 = denied)
    """
    data = file_path.read_bytes()
    guessed, _ = mimetypes.guess_type(file_path.name)
    service = build_service(settings)
    try:
        descriptor = service.upload(
            credential,
            data,
            mime_type=mime_type or guessed,
            extension=file_path.suffix.lstrip(".") or None,
        )
    except BlobgateError as e:
        return _report_error(e)
    print(descriptor.sha256)
    return 0


def run_blob_get(settings: Settings, sha256: str, credential: Credential | None, output: Path) -> int:
    service = build_service(settings)
    try:
        stream = service.download(credential, sha256)
    except BlobgateError as e:
        return _report_error(e)
    with stream, output.open("wb") as f:
        shutil.copyfileobj(stream, f)
    Console(stderr=True).print(f"Wrote {output}", style="green")
    return 0


def run_blob_rm(settings: Settings, sha256: str, credential: Credential | None) -> int:
    service = build_service(settings)
    try:
        erased = service.delete(credential, sha256)
    except BlobgateError as e:
        return _report_error(e)
    if erased:
        Console().print(f"Deleted {sha256}", style="green")
    else:
        Console().print(f"Released {sha256} (still held by other owners)", style="yellow")
    return 0


def run_blob_ls(settings: Settings, pubkey: str, *, output_json: bool = False) -> int:
    descriptors = build_service(settings).list(pubkey)

    if output_json:
        print(json.dumps([d.to_dict() for d in descriptors], indent=2))
        return 0

    table = Table(title=f"Blobs for {pubkey[:16]}…" if len(pubkey) > 16 else f"Blobs for {pubkey}")
    table.add_column("sha256", style="cyan", no_wrap=True)
    table.add_column("size", justify="right")
    table.add_column("type", style="magenta")
    table.add_column("uploaded", style="dim")
    for d in descriptors:
        table.add_row(d.sha256, str(d.size), d.type, str(d.uploaded))
    Console().print(table)
    return 0


def run_audit_show(settings: Settings, *, last_n: int | None = None) -> int:
    entries = read_audit_log(settings.audit_log_path, last_n=last_n)
    if not entries:
        Console(stderr=True).print("No audit entries recorded.", style="dim")
        return 0
    for entry in entries:
        print(format_audit_entry(entry))
    return 0
