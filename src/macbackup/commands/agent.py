"""LaunchAgent commands for the daily job."""

import typer

from ..config import load_config
from ..output import get_output_context
from ..services import LaunchAgentError, install_agent, remove_agent
from ..services.launchd import agent_path

agent_app = typer.Typer(help="Manage the daily backup LaunchAgent", no_args_is_help=True)


@agent_app.command("install")
def agent_install() -> None:
    """Install (or refresh) the LaunchAgent and start it."""
    ctx = get_output_context()
    config = load_config(ctx.config_path)

    try:
        path = install_agent(config.schedule, config_path=ctx.config_path)
    except LaunchAgentError as e:
        ctx.error(f"launchctl failed: {e}")
        raise typer.Exit(1) from None

    ctx.success(
        f"LaunchAgent refreshed: {path} (label: {config.schedule.label})",
        data={"path": str(path), "label": config.schedule.label},
    )


@agent_app.command("remove")
def agent_remove() -> None:
    """Boot out and delete the LaunchAgent."""
    ctx = get_output_context()
    config = load_config(ctx.config_path)
    path = agent_path(config.schedule.label)

    if remove_agent(config.schedule):
        ctx.success(f"Removed plist: {path}", data={"path": str(path), "removed": True})
    else:
        ctx.result(
            {"path": str(path), "removed": False}, message=f"Plist already absent at {path}"
        )
