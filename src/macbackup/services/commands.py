"""Subprocess helpers for external tools."""

import logging
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

logger = logging.getLogger(__name__)


class CommandError(Exception):
    """Error running an external command."""

    pass


def find_executable(name: str, fallbacks: Sequence[str] = ()) -> str | None:
    """Locate an executable on PATH, then in fallback locations.

    Args:
        name: Executable name
        fallbacks: Absolute paths tried when PATH lookup fails

    Returns:
        Path to the executable, or None if not found
    """
    found = shutil.which(name)
    if found:
        return found
    for candidate in fallbacks:
        if shutil.which(candidate):
            return candidate
    return None


def run_command(
    args: Sequence[str],
    timeout: float | None = None,
    cwd: Path | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run a command and capture its output.

    Args:
        args: Command and arguments
        timeout: Optional timeout in seconds
        cwd: Working directory
        check: Raise CommandError on non-zero exit

    Returns:
        Completed process with text stdout/stderr

    Raises:
        CommandError: If the command is missing, times out or (with check)
            exits non-zero
    """
    logger.debug("Running: %s", " ".join(args))
    try:
        result = subprocess.run(
            list(args),
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandError(f"{args[0]} timed out after {timeout} seconds") from e
    except FileNotFoundError:
        raise CommandError(f"Command not found: {args[0]}") from None
    except OSError as e:
        raise CommandError(f"Cannot run {args[0]}: {e}") from e

    if check and result.returncode != 0:
        stderr = result.stderr.strip()
        raise CommandError(f"{args[0]} exited with status {result.returncode}: {stderr[:200]}")
    return result


def try_command(args: Sequence[str], timeout: float | None = None) -> bool:
    """Run a best-effort command, logging failures instead of raising.

    Returns:
        True if the command exited with status 0
    """
    try:
        run_command(args, timeout=timeout)
    except CommandError as e:
        logger.debug("Best-effort command failed: %s", e)
        return False
    return True
