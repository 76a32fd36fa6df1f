"""Console and per-run file logging for backups."""

import logging
from enum import IntEnum
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

RUN_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class LogLevel(IntEnum):
    """Console verbosity of a backup run."""

    QUIET = logging.WARNING
    NORMAL = logging.INFO
    VERBOSE = logging.DEBUG


def configure_logging(verbosity: int = 0, quiet: bool = False, no_color: bool = False) -> Console:
    """Send backup progress to stderr through rich.

    Info level narrates each step of a run (staging, copies, packaging,
    iCloud waits). `-v` adds tool discovery and the commands being run;
    `-vv` also shows timestamps and source locations. `--quiet` wins over
    `-v` and keeps only warnings, which suits LaunchAgent runs whose
    stderr goes to /tmp.

    Returns:
        Console shared with the command output
    """
    if quiet:
        level = LogLevel.QUIET
    elif verbosity:
        level = LogLevel.VERBOSE
    else:
        level = LogLevel.NORMAL
    detailed = verbosity >= 2

    console = Console(stderr=True, force_terminal=not no_color, no_color=no_color)
    handler = RichHandler(console=console, show_time=detailed, show_path=detailed)
    logging.basicConfig(level=level, format="%(message)s", handlers=[handler])
    return console


def attach_run_log(path: Path) -> logging.Handler:
    """Mirror all log records into a plain-text file for one backup run.

    The file lives inside the staging entry so it ships with the backup.
    Detach with `detach_run_log` when the run ends.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(RUN_LOG_FORMAT))
    logging.getLogger().addHandler(handler)
    return handler


def detach_run_log(handler: logging.Handler) -> None:
    """Remove and close a handler added by `attach_run_log`."""
    logging.getLogger().removeHandler(handler)
    handler.close()
