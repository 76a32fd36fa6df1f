"""Daily command: the scheduled entry point."""

import typer

from ..config import load_config
from ..core import LockError, PipelineError, run_daily
from ..output import get_output_context


def daily() -> None:
    """Run the unattended backup unless one finished recently."""
    ctx = get_output_context()
    config = load_config(ctx.config_path)

    try:
        result = run_daily(config)
    except (LockError, PipelineError) as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None

    if result.skipped:
        ctx.result(result.model_dump(mode="json"), message=result.reason or "Skipped.")
        return
    ctx.success("Daily backup completed.", data=result.model_dump(mode="json"))
