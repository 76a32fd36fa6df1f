"""Filesystem operations: rsync copies, sizes and forced removal."""

import contextlib
import glob
import logging
import os
import shutil
import stat
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from .commands import CommandError, run_command

logger = logging.getLogger(__name__)


def expand_source(source: str) -> list[str]:
    """Expand ~ and glob patterns in a configured source path.

    Results are strings so a trailing slash survives (rsync then copies
    directory contents rather than the directory itself).

    Returns:
        Existing matching paths, possibly empty
    """
    expanded = os.path.expanduser(source)
    trailing = expanded.endswith("/")
    if any(ch in expanded for ch in "*?["):
        matches = sorted(glob.glob(expanded.rstrip("/")))
    else:
        matches = [expanded.rstrip("/")] if os.path.lexists(expanded.rstrip("/")) else []
    return [m + "/" if trailing else m for m in matches]


def rsync(
    source: str,
    dest: Path,
    excludes: Sequence[str] = (),
    sudo: bool = False,
    extra_args: Sequence[str] = (),
) -> int:
    """Copy with `rsync -a`.

    Args:
        source: Source path; a trailing slash copies directory contents
        dest: Destination path
        excludes: rsync exclude patterns
        sudo: Run through non-interactive sudo
        extra_args: Additional rsync flags

    Returns:
        rsync exit status (non-zero for partial copies)

    Raises:
        CommandError: If rsync (or sudo) is not installed
    """
    args = ["rsync", "-a", *extra_args]
    for pattern in excludes:
        args.extend(["--exclude", pattern])
    args.extend([source, str(dest)])
    if sudo:
        args = ["sudo", "-n", *args]
    dest.parent.mkdir(parents=True, exist_ok=True)
    result = run_command(args, check=False)
    if result.returncode != 0:
        logger.debug("rsync stderr: %s", result.stderr.strip()[:500])
    return result.returncode


def stream_to_file(args: Sequence[str], output: Path, timeout: float | None = None) -> bool:
    """Run a command and write its stdout to `output`.

    Returns:
        True if the command succeeded and output was written
    """
    try:
        result = run_command(args, timeout=timeout)
    except CommandError as e:
        logger.debug("Inventory command failed: %s", e)
        return False
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(result.stdout)
    return True


def path_size(path: Path) -> int:
    """Total size in bytes of a file or directory tree (0 if missing)."""
    if not path.exists():
        return 0
    if path.is_file():
        return path.stat().st_size
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            with contextlib.suppress(OSError):
                total += os.lstat(os.path.join(root, name)).st_size
    return total


def human_size(num_bytes: int) -> str:
    """Format a byte count like `du -h` (e.g. 1.5G)."""
    size = float(num_bytes)
    for unit in ("B", "K", "M", "G", "T"):
        if size < 1024 or unit == "T":
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}T"


def _make_writable(func: Callable[[str], object], path: str, _exc: BaseException) -> None:
    # Removal is governed by the parent directory mode
    with contextlib.suppress(OSError):
        os.chmod(os.path.dirname(path), stat.S_IRWXU)
    func(path)


def force_remove(path: Path) -> bool:
    """Remove a tree, clearing immutable flags and write protection first.

    Falls back to non-interactive sudo for root-owned leftovers.

    Returns:
        True if the path no longer exists
    """
    if not path.exists():
        return True
    if shutil.which("chflags"):
        subprocess.run(["chflags", "-R", "nouchg", str(path)], capture_output=True)
    try:
        shutil.rmtree(path, onexc=_make_writable)
    except OSError as e:
        logger.info("Retrying cleanup with sudo to remove root-owned files (%s)", e)
        with contextlib.suppress(CommandError):
            run_command(["sudo", "-n", "rm", "-rf", str(path)], check=False)
    return not path.exists()
