"""Prune command for old staging entries."""

import typer

from ..config import load_config
from ..core import parse_retention, prune_staging
from ..output import get_output_context


def prune(
    retention_days: str | None = typer.Option(
        None,
        "--retention-days",
        "-d",
        help="Days to keep (0 disables pruning; default from config)",
    ),
) -> None:
    """Delete staging entries older than the retention window."""
    ctx = get_output_context()
    config = load_config(ctx.config_path)
    retention = retention_days if retention_days is not None else config.staging.retention_days

    if parse_retention(retention) is None:
        ctx.result({"removed": [], "disabled": True}, message="Pruning disabled.")
        return

    removed = prune_staging(config.staging.root, retention)
    ctx.result(
        {"removed": [str(p) for p in removed], "disabled": False},
        message=f"Removed {len(removed)} staging entr{'y' if len(removed) == 1 else 'ies'}.",
    )
