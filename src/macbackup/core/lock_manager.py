"""Lock manager for backup staging concurrency control.

Provides a PID-recording lock directory so only one backup process works on
a staging root at a time. Includes stale lock detection for crash recovery.

The lock directory is populated under a temporary name and renamed into
place, so a lock never becomes visible without its owner's pid. Stale locks
are reclaimed by renaming them to a unique tombstone first; when several
processes race to reclaim the same stale lock only one rename succeeds.
"""

import errno
import logging
import os
import shutil
import uuid
from datetime import datetime
from pathlib import Path
from types import TracebackType

from ..constants import LOCK_DIR_NAME, LOCK_ENTRY_FILE, LOCK_PID_FILE
from ..models import Lock, LockState

logger = logging.getLogger(__name__)

MAX_LOCK_RETRIES = 3  # Max retries when clearing stale locks


class LockError(Exception):
    """Error acquiring or managing lock."""


def lock_dir_for(staging_root: Path) -> Path:
    """Get path to the lock directory of a staging root."""
    return staging_root / LOCK_DIR_NAME


def _is_pid_running(pid: int) -> bool:
    """Check if a process with given PID is running."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)  # Signal 0 doesn't kill, just checks
    except PermissionError:
        # Exists but belongs to another user
        return True
    except OSError:
        return False
    return True


def _read_pid(lock_dir: Path) -> int | None:
    try:
        return int((lock_dir / LOCK_PID_FILE).read_text().strip())
    except (OSError, ValueError):
        return None


def get_current_lock(staging_root: Path) -> Lock | None:
    """Get the current lock if it exists and records a pid.

    Args:
        staging_root: Staging root directory

    Returns:
        Lock if a readable lock exists, None otherwise
    """
    lock_dir = lock_dir_for(staging_root)
    pid = _read_pid(lock_dir)
    if pid is None:
        return None

    try:
        acquired_at = datetime.fromtimestamp(lock_dir.stat().st_mtime)
    except FileNotFoundError:
        acquired_at = datetime.now()
    try:
        entry = (lock_dir / LOCK_ENTRY_FILE).read_text().strip() or None
    except FileNotFoundError:
        entry = None
    return Lock(pid=pid, lock_dir=lock_dir, acquired_at=acquired_at, entry=entry)


def is_stale_lock(lock: Lock) -> bool:
    """Check if lock is stale (owning process no longer exists)."""
    return not _is_pid_running(lock.pid)


def lock_state(staging_root: Path) -> tuple[LockState, int | None]:
    """Report whether a backup is running on a staging root.

    Returns:
        Tuple of (state, pid). The pid is None when no lock exists or the
        lock records no readable pid.
    """
    lock_dir = lock_dir_for(staging_root)
    if not lock_dir.exists():
        return LockState.NOT_RUNNING, None

    pid = _read_pid(lock_dir)
    if pid is None:
        return LockState.STALE, None
    if _is_pid_running(pid):
        return LockState.RUNNING, pid
    return LockState.STALE, pid


def _try_atomic_create(lock_dir: Path, pid: int) -> bool:
    """Attempt atomic lock directory creation.

    Builds the directory under a private name, then renames it into place.
    Renaming onto a non-empty directory fails, so an existing lock is never
    overwritten.

    Returns:
        True if lock was created, False if a lock already exists
    """
    staging = lock_dir.with_name(f"{lock_dir.name}.new-{pid}-{uuid.uuid4().hex[:8]}")
    staging.mkdir()
    try:
        (staging / LOCK_PID_FILE).write_text(f"{pid}\n")
        os.rename(staging, lock_dir)
        return True
    except OSError as e:
        if e.errno in (errno.EEXIST, errno.ENOTEMPTY, errno.ENOTDIR):
            return False
        raise
    finally:
        if staging.exists():
            shutil.rmtree(staging, ignore_errors=True)


def _reclaim(lock_dir: Path) -> None:
    """Move a stale lock out of the way and delete it."""
    tombstone = lock_dir.with_name(f"{lock_dir.name}.stale-{uuid.uuid4().hex[:8]}")
    try:
        os.rename(lock_dir, tombstone)
    except FileNotFoundError:
        # Another process reclaimed it first
        return
    shutil.rmtree(tombstone, ignore_errors=True)


class RunLock:
    """Exclusive lock over a staging root.

    Use as a context manager or call `acquire`/`release` directly.
    `release` is idempotent and safe to call from any exit path.

    Example:
        >>> with RunLock(Path("/tmp/mac_backup_staging")) as lock:
        ...     lock.protect("System_Backup_20260101_030000")
    """

    def __init__(self, staging_root: Path, pid: int | None = None) -> None:
        self.staging_root = staging_root
        self.pid = pid if pid is not None else os.getpid()
        self.held = False

    @property
    def lock_dir(self) -> Path:
        return lock_dir_for(self.staging_root)

    def acquire(self) -> Lock:
        """Acquire the lock, reclaiming it if its owner is dead.

        Returns:
            The acquired Lock

        Raises:
            LockError: If a live process holds the lock, or the lock could
                not be created after reclaiming stale ones
        """
        self.staging_root.mkdir(parents=True, exist_ok=True)

        for _ in range(MAX_LOCK_RETRIES):
            if _try_atomic_create(self.lock_dir, self.pid):
                self.held = True
                logger.debug("Acquired backup lock %s (pid %d)", self.lock_dir, self.pid)
                return Lock(pid=self.pid, lock_dir=self.lock_dir)

            existing_pid = _read_pid(self.lock_dir)
            if existing_pid == self.pid:
                # We already own the lock
                self.held = True
                return Lock(pid=self.pid, lock_dir=self.lock_dir)

            if existing_pid is not None and _is_pid_running(existing_pid):
                raise LockError(f"Another backup is already running (pid {existing_pid})")

            if existing_pid is None:
                logger.info("Backup lock present without owner; removing stale lock and retrying")
            else:
                logger.info(
                    "Stale backup lock found (pid %d); removing and retrying", existing_pid
                )
            _reclaim(self.lock_dir)

        raise LockError("Unable to acquire backup lock")

    def protect(self, entry: str) -> None:
        """Record the staging entry this run is building.

        The pruner leaves the recorded entry alone while the lock is held.
        """
        if not self.held:
            raise LockError("Cannot protect an entry without holding the lock")
        (self.lock_dir / LOCK_ENTRY_FILE).write_text(f"{entry}\n")

    def release(self) -> None:
        """Remove the lock directory. Safe to call multiple times."""
        if not self.held:
            return
        self.held = False
        shutil.rmtree(self.lock_dir, ignore_errors=True)
        logger.debug("Released backup lock %s", self.lock_dir)

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()
