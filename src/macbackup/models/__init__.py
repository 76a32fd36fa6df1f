"""Pydantic data models for macbackup.

This package defines the data structures shared across macbackup:
- Run lock records and lock state (Lock, LockState)
- Cloud wait outcomes (CloudOutcome)
- Backup manifest entries and verification reports (ManifestEntry, VerifyReport)
- Backup and scheduler results (BackupResult, DailyResult)

Example:
    >>> from macbackup.models import Lock
    >>> Lock(pid=123, lock_dir="/tmp/staging/.backup_lock").model_dump_json()
"""

from .backup import BackupFormat, BackupResult, DailyResult
from .cloud import CloudOutcome
from .lock import Lock, LockState
from .manifest import EntryCheck, ManifestEntry, VerifyReport

__all__ = [
    "BackupFormat",
    "BackupResult",
    "CloudOutcome",
    "DailyResult",
    "EntryCheck",
    "Lock",
    "LockState",
    "ManifestEntry",
    "VerifyReport",
]
