"""Init command: write a config template."""

import typer

from ..config import default_config_path, write_config_template
from ..output import get_output_context


def init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
) -> None:
    """Create a config file with the default settings."""
    ctx = get_output_context()
    path = ctx.config_path or default_config_path()

    if path.exists() and not force:
        ctx.print(f"[yellow]Config already exists:[/yellow] {path}")
        return

    write_config_template(path)
    ctx.success(f"Created config template: {path}", data={"path": str(path)})
