"""Verify command for finished backups."""

from pathlib import Path

import typer

from ..config import load_config
from ..core import VerifyError, build_manifest, verify_backup
from ..output import get_output_context


def verify(
    target: Path = typer.Argument(
        ...,
        help="Backup folder, .tgz/.tar.gz or .zip archive",
    ),
) -> None:
    """Check a backup for the expected contents.

    Exits 1 if a required item is missing.
    """
    ctx = get_output_context()
    config = load_config(ctx.config_path)

    try:
        report = verify_backup(target, build_manifest(config))
    except VerifyError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None

    ctx.report(report)
    if not report.ok:
        raise typer.Exit(1)
