"""Command results for humans (rich) or scripts (--json)."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from .models import VerifyReport

STATUS_STYLES = {"present": "green", "optional": "dim", "missing": "red"}


@dataclass
class OutputContext:
    """Where a command reports its result.

    Progress goes through logging; this carries the final outcome of a
    command, either as rich text or as one JSON document on stdout for
    scripts driving macbackup.
    """

    console: Console
    json_mode: bool = False
    config_path: Path | None = None

    def print(self, message: str, style: str | None = None) -> None:
        """Print a human-only note (dropped in JSON mode)."""
        if not self.json_mode:
            self.console.print(message, style=style)

    def print_json(self, data: dict[str, Any]) -> None:
        """Write a JSON document to stdout."""
        if self.json_mode:
            print(json.dumps(data, indent=2, default=str))

    def result(self, data: dict[str, Any], message: str = "") -> None:
        """Report a result: `data` in JSON mode, `message` otherwise."""
        if self.json_mode:
            self.print_json(data)
        elif message:
            self.console.print(message)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Report a failure such as lock contention or an unreadable backup."""
        if self.json_mode:
            self.print_json({"error": message, **(data or {})})
        else:
            self.console.print(f"[red]Error: {message}[/red]")

    def success(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Report a completed action with its details."""
        if self.json_mode:
            self.print_json({"success": message, **(data or {})})
        else:
            self.console.print(f"[green]{message}[/green]")

    def report(self, report: VerifyReport) -> None:
        """Print a verification report as a table or JSON."""
        if self.json_mode:
            self.print_json(
                {
                    "target": str(report.target),
                    "mode": report.mode,
                    "root": report.root,
                    "passed": report.passed,
                    "missing_required": report.missing_required,
                    "checks": [
                        {
                            "path": c.entry.path,
                            "description": c.entry.description,
                            "status": c.status,
                        }
                        for c in report.checks
                    ],
                }
            )
            return

        table = Table(title=f"{report.target} ({report.mode}, root: {report.root})")
        table.add_column("Item")
        table.add_column("Path")
        table.add_column("Status")
        for check in report.checks:
            style = STATUS_STYLES[check.status]
            table.add_row(
                check.entry.description, check.entry.path, f"[{style}]{check.status}[/{style}]"
            )
        self.console.print(table)
        self.console.print(
            f"Passed: {report.passed}  | Missing (required): {report.missing_required}"
        )


# Set once per invocation by the cli callback
_ctx: OutputContext | None = None


def get_output_context() -> OutputContext:
    """Context of the running command, or a plain console outside the CLI."""
    if _ctx is None:
        return OutputContext(Console())
    return _ctx


def set_output_context(ctx: OutputContext) -> None:
    """Install the context for the running command."""
    global _ctx
    _ctx = ctx
