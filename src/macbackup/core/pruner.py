"""Age-based pruning of old staging entries."""

import contextlib
import logging
import shutil
import time
from collections.abc import Iterable
from pathlib import Path

from ..constants import ARCHIVE_SUFFIXES, BACKUP_PREFIX, LOCK_DIR_NAME
from .lock_manager import get_current_lock, is_stale_lock

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def parse_retention(value: int | str | None) -> int | None:
    """Normalize a retention setting.

    Returns:
        Retention in whole days, or None when pruning is disabled (zero,
        negative, empty or non-numeric values)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
    try:
        days = int(value)
    except ValueError:
        return None
    return days if days > 0 else None


def _is_staging_artifact(path: Path) -> bool:
    if not path.name.startswith(BACKUP_PREFIX):
        return False
    if path.is_dir() and not path.is_symlink():
        return True
    return path.is_file() and path.suffix in ARCHIVE_SUFFIXES


def _held_entry(staging_root: Path) -> Path | None:
    lock = get_current_lock(staging_root)
    if lock is None or lock.entry is None or is_stale_lock(lock):
        return None
    return staging_root / lock.entry


def prune_staging(
    staging_root: Path,
    retention_days: int | str | None,
    protected: Iterable[Path] = (),
    now: float | None = None,
) -> list[Path]:
    """Delete staging entries older than the retention window.

    Entries are `System_Backup_*` folders and `System_Backup_*.tgz`/`.zip`
    archives directly under the staging root. The lock directory, anything in
    `protected` and the entry recorded by a live lock holder are never
    touched. The staging root itself is removed if it ends up empty.

    Args:
        staging_root: Staging root directory
        retention_days: Days to keep; disabled when zero or non-numeric
        protected: Paths that must survive regardless of age
        now: Reference time (epoch seconds), defaults to the current time

    Returns:
        Paths that were removed
    """
    days = parse_retention(retention_days)
    if days is None:
        logger.debug("Staging pruning disabled (retention=%r)", retention_days)
        return []
    if not staging_root.is_dir():
        return []

    keep = {p.resolve() for p in protected}
    held = _held_entry(staging_root)
    if held is not None:
        keep.add(held.resolve())

    cutoff = (now if now is not None else time.time()) - days * SECONDS_PER_DAY
    removed: list[Path] = []

    for path in sorted(staging_root.iterdir()):
        if path.name == LOCK_DIR_NAME or not _is_staging_artifact(path):
            continue
        if path.resolve() in keep:
            continue
        try:
            if path.stat().st_mtime >= cutoff:
                continue
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as e:
            logger.warning("Could not prune %s: %s", path, e)
            continue
        logger.info("Pruned old staging entry: %s", path)
        removed.append(path)

    # Only succeeds when empty
    with contextlib.suppress(OSError):
        staging_root.rmdir()

    return removed
