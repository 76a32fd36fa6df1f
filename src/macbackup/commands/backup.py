"""Backup command implementation."""

import typer

from ..config import load_config
from ..core import BackupPipeline, LockError, PipelineError
from ..models import BackupFormat
from ..output import get_output_context


def backup(
    fmt: BackupFormat | None = typer.Argument(
        None,
        metavar="[dir|tar|zip]",
        help="Packaging: folder, .tgz or .zip (default from config: tar)",
        show_default=False,
    ),
    clean: bool | None = typer.Option(
        None,
        "--clean/--no-clean",
        help="Delete the staged folder after creating the archive",
        show_default=False,
    ),
    archives: bool | None = typer.Option(
        None,
        "--archives/--no-archives",
        help="Include Desktop/Documents/Downloads/Pictures/Movies archives",
        show_default=False,
    ),
) -> None:
    """Stage, package and ship a backup of this Mac."""
    ctx = get_output_context()
    config = load_config(ctx.config_path)

    try:
        result = BackupPipeline(config).run(fmt=fmt, clean=clean, archives=archives)
    except LockError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None
    except PipelineError as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None

    ctx.success(
        f"Backup ready at: {result.output_path}",
        data=result.model_dump(mode="json"),
    )
