"""CLI entrypoint for blobgate."""

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import load_settings


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _credential(auth: Path | None):
    from .commands.policy_cmd import read_event

    try:
        return read_event(auth)
    except (OSError, ValueError, KeyError) as e:
        raise click.BadParameter(f"cannot read authorization event: {e}", param_hint="--auth")


auth_option = click.option(
    "--auth",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON file holding the signed authorization event ('-' for stdin). Omit to send no credential.",
)


@click.group()
@click.version_option(__version__, prog_name="blobgate")
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Load environment variables from this file (defaults to ./.env if present)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log policy decisions at debug level")
@click.pass_context
def cli(ctx: click.Context, env_file: Path | None, verbose: bool) -> None:
    """blobgate - authorization and blob storage policy for a Nostr relay.

    Decide who may upload, download and delete blobs, and which events the
    relay accepts.
    """
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = load_settings(env_file)


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show relay information and effective limits."""
    print(json.dumps(ctx.obj["settings"].to_dict(), indent=2))


@cli.command()
@click.argument("event_file", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_context
def ingest(ctx: click.Context, event_file: Path) -> None:
    """Submit EVENT_FILE (a signed event as JSON) to the relay."""
    from .commands.policy_cmd import run_ingest

    try:
        exit_code = run_ingest(ctx.obj["settings"], event_file)
    except (OSError, ValueError, KeyError) as e:
        raise click.ClickException(f"cannot read event: {e}")
    sys.exit(exit_code)


# -----------------------------------------------------------------------------
# Authorization checks
# -----------------------------------------------------------------------------


@cli.group()
def check() -> None:
    """Evaluate a policy decision without touching storage."""


@check.command("download")
@click.argument("sha256")
@auth_option
@click.option("--json", "output_json", is_flag=True, help="Output the verdict as JSON")
@click.pass_context
def check_download(ctx: click.Context, sha256: str, auth: Path | None, output_json: bool) -> None:
    """Would the credential holder be allowed to fetch SHA256?"""
    from .commands.policy_cmd import run_check_download

    sys.exit(run_check_download(ctx.obj["settings"], sha256, _credential(auth), output_json=output_json))


@check.command("upload")
@click.argument("size", type=int)
@auth_option
@click.option("--ext", "extension", type=str, default=None, help="File extension of the upload")
@click.option("--json", "output_json", is_flag=True, help="Output the verdict as JSON")
@click.pass_context
def check_upload(
    ctx: click.Context,
    size: int,
    auth: Path | None,
    extension: str | None,
    output_json: bool,
) -> None:
    """Would an upload of SIZE bytes be accepted?"""
    from .commands.policy_cmd import run_check_upload

    sys.exit(
        run_check_upload(
            ctx.obj["settings"],
            size,
            _credential(auth),
            extension=extension,
            output_json=output_json,
        )
    )


@check.command("delete")
@click.argument("sha256")
@auth_option
@click.option("--json", "output_json", is_flag=True, help="Output the verdict as JSON")
@click.pass_context
def check_delete(ctx: click.Context, sha256: str, auth: Path | None, output_json: bool) -> None:
    """Would the credential holder be allowed to delete SHA256?"""
    from .commands.policy_cmd import run_check_delete

    sys.exit(run_check_delete(ctx.obj["settings"], sha256, _credential(auth), output_json=output_json))


# -----------------------------------------------------------------------------
# Blob commands
# -----------------------------------------------------------------------------


@cli.group()
def blob() -> None:
    """Store, fetch, delete and list blobs."""


@blob.command("put")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@auth_option
@click.option("--type", "mime_type", type=str, default=None, help="MIME type (guessed from the name if omitted)")
@click.pass_context
def blob_put(ctx: click.Context, file: Path, auth: Path | None, mime_type: str | None) -> None:
    """Upload FILE and print its sha256."""
    from .commands.blob_cmd import run_blob_put

    sys.exit(run_blob_put(ctx.obj["settings"], file, _credential(auth), mime_type=mime_type))


@blob.command("get")
@click.argument("sha256")
@auth_option
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="Where to write the blob",
)
@click.pass_context
def blob_get(ctx: click.Context, sha256: str, auth: Path | None, output: Path) -> None:
    """Download blob SHA256."""
    from .commands.blob_cmd import run_blob_get

    sys.exit(run_blob_get(ctx.obj["settings"], sha256, _credential(auth), output))


@blob.command("rm")
@click.argument("sha256")
@auth_option
@click.pass_context
def blob_rm(ctx: click.Context, sha256: str, auth: Path | None) -> None:
    """Delete blob SHA256 owned by the credential holder."""
    from .commands.blob_cmd import run_blob_rm

    sys.exit(run_blob_rm(ctx.obj["settings"], sha256, _credential(auth)))


@blob.command("ls")
@click.argument("pubkey")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def blob_ls(ctx: click.Context, pubkey: str, output_json: bool) -> None:
    """List blobs recorded for PUBKEY."""
    from .commands.blob_cmd import run_blob_ls

    sys.exit(run_blob_ls(ctx.obj["settings"], pubkey, output_json=output_json))


@cli.command()
@click.option("--last", "last_n", type=int, default=None, help="Only show the last N entries")
@click.pass_context
def audit(ctx: click.Context, last_n: int | None) -> None:
    """Show blob store and delete operations from the audit log."""
    from .commands.blob_cmd import run_audit_show

    sys.exit(run_audit_show(ctx.obj["settings"], last_n=last_n))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
