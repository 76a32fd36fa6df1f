"""Lock model for single-run staging protection.

A lock is a directory inside the staging root whose `pid` file names the
owning process. Its presence is the mutual-exclusion token.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class LockState(str, Enum):
    """Observed state of a staging root's lock."""

    RUNNING = "running"
    NOT_RUNNING = "not_running"
    STALE = "stale"


class Lock(BaseModel):
    """Run lock stored at <staging_root>/.backup_lock.

    Attributes:
        pid: Process ID of the lock holder.
        lock_dir: Path of the lock directory.
        acquired_at: When the lock directory was created.
        entry: Name of the staging entry the holder is building, if recorded.
    """

    pid: int = Field(description="Process ID holding the lock")
    lock_dir: Path = Field(description="Lock directory path")
    acquired_at: datetime = Field(default_factory=datetime.now)
    entry: str | None = Field(default=None, description="Protected staging entry name")
