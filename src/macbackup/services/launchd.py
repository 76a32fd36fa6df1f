"""LaunchAgent management for the daily backup job."""

import logging
import os
import plistlib
import shutil
import sys
from pathlib import Path

from ..config import ScheduleConfig
from ..constants import LAUNCHCTL_TIMEOUT
from .commands import CommandError, run_command, try_command

logger = logging.getLogger(__name__)


class LaunchAgentError(Exception):
    """Error installing or removing the LaunchAgent."""

    pass


def agent_path(label: str, home: Path | None = None) -> Path:
    """Path of the LaunchAgent plist for `label`."""
    return (home or Path.home()) / "Library" / "LaunchAgents" / f"{label}.plist"


def _program_arguments(config_path: Path | None) -> list[str]:
    executable = shutil.which("macbackup")
    args = [executable] if executable else [sys.executable, "-m", "macbackup"]
    if config_path is not None:
        args.extend(["--config", str(config_path)])
    args.append("daily")
    return args


def build_agent_plist(
    schedule: ScheduleConfig,
    config_path: Path | None = None,
    log_dir: Path = Path("/tmp"),
) -> dict[str, object]:
    """Build the LaunchAgent definition for the daily run."""
    return {
        "Label": schedule.label,
        "ProgramArguments": _program_arguments(config_path),
        "StartCalendarInterval": {"Hour": schedule.hour, "Minute": schedule.minute},
        "StandardOutPath": str(log_dir / "daily_backup.out"),
        "StandardErrorPath": str(log_dir / "daily_backup.err"),
        "RunAtLoad": False,
    }


def _domain() -> str:
    return f"gui/{os.getuid()}"


def install_agent(
    schedule: ScheduleConfig,
    config_path: Path | None = None,
    home: Path | None = None,
) -> Path:
    """Write the plist and (re)load it with launchctl.

    Returns:
        Path to the installed plist

    Raises:
        LaunchAgentError: If launchctl cannot bootstrap the agent
    """
    dest = agent_path(schedule.label, home)
    dest.parent.mkdir(parents=True, exist_ok=True)
    with open(dest, "wb") as f:
        plistlib.dump(build_agent_plist(schedule, config_path), f)

    # Unload any previous definition; failure just means it wasn't loaded
    try_command(["launchctl", "bootout", _domain(), str(dest)], timeout=LAUNCHCTL_TIMEOUT)
    try:
        run_command(["launchctl", "bootstrap", _domain(), str(dest)], timeout=LAUNCHCTL_TIMEOUT)
        run_command(
            ["launchctl", "kickstart", "-k", f"{_domain()}/{schedule.label}"],
            timeout=LAUNCHCTL_TIMEOUT,
        )
    except CommandError as e:
        raise LaunchAgentError(str(e)) from e
    logger.info("LaunchAgent installed: %s", dest)
    return dest


def remove_agent(schedule: ScheduleConfig, home: Path | None = None) -> bool:
    """Boot out and delete the plist.

    Returns:
        True if a plist was removed, False if it was already absent
    """
    dest = agent_path(schedule.label, home)
    label = schedule.label
    if dest.exists():
        with open(dest, "rb") as f:
            label = plistlib.load(f).get("Label", label)

    try_command(["launchctl", "bootout", _domain(), str(dest)], timeout=LAUNCHCTL_TIMEOUT)
    try_command(["launchctl", "bootout", f"{_domain()}/{label}"], timeout=LAUNCHCTL_TIMEOUT)

    if dest.exists():
        dest.unlink()
        return True
    return False
