"""macbackup CLI: staged macOS backups with iCloud offload."""

from pathlib import Path

import typer

from macbackup import __version__

from .commands import agent_app, backup, daily, init, prune, status, verify
from .logging import configure_logging
from .output import OutputContext, set_output_context


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"macbackup {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="macbackup",
    help="Staged macOS backups with iCloud upload and eviction",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (default: ~/.config/macbackup/config.toml)",
    ),
) -> None:
    """macbackup - staged macOS backups."""
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    set_output_context(OutputContext(console=console, json_mode=json_output, config_path=config))


app.command()(init)
app.command()(backup)
app.command()(status)
app.command()(prune)
app.command()(verify)
app.command()(daily)
app.add_typer(agent_app, name="agent")
