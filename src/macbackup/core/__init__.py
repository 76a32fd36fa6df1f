"""Core backup logic for macbackup.

- lock_manager: staging root run lock with stale lock reclaim
- pruner: age-based removal of old staging entries
- session: lock + signal handling + pruning around a run
- retry: bounded polling helper
- cloud_waiter: iCloud download/upload readiness waits
- privileges: sudo credential keep-alive
- archive: tar/zip packaging
- manifest: expected backup contents
- pipeline: the backup run itself
- verify: checking finished backups
- scheduler: unattended daily runs
"""

from .archive import ArchiveError, create_tar, create_zip, list_members
from .cloud_waiter import CloudWaiter, is_icloud_path
from .lock_manager import LockError, RunLock, get_current_lock, is_stale_lock, lock_state
from .manifest import build_manifest, check_directory, format_check
from .pipeline import BackupPipeline, PipelineError
from .privileges import SudoKeepAlive
from .pruner import parse_retention, prune_staging
from .retry import poll_until
from .scheduler import prune_finished, run_daily, skip_reason
from .session import StagingSession, Terminated, staging_session
from .verify import VerifyError, verify_backup

__all__ = [
    "ArchiveError",
    "BackupPipeline",
    "CloudWaiter",
    "LockError",
    "PipelineError",
    "RunLock",
    "StagingSession",
    "SudoKeepAlive",
    "Terminated",
    "VerifyError",
    "build_manifest",
    "check_directory",
    "create_tar",
    "create_zip",
    "format_check",
    "get_current_lock",
    "is_icloud_path",
    "is_stale_lock",
    "list_members",
    "lock_state",
    "parse_retention",
    "poll_until",
    "prune_finished",
    "prune_staging",
    "run_daily",
    "skip_reason",
    "staging_session",
    "verify_backup",
]
