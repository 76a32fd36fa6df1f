"""Unattended daily backup with an every-other-day cadence."""

import contextlib
import logging
import time
from collections.abc import Callable
from pathlib import Path

from ..config import MacBackupConfig
from ..constants import BACKUP_PREFIX, LAST_RUN_FILE
from ..models import BackupFormat, DailyResult
from ..services.notify import notify
from .pipeline import BackupPipeline

logger = logging.getLogger(__name__)

NOTIFY_TITLE = "Daily Backup"


def read_last_run(root: Path) -> float | None:
    """Epoch seconds of the last successful run, if recorded."""
    try:
        raw = (root / LAST_RUN_FILE).read_text().strip()
    except OSError:
        return None
    return float(raw) if raw.isdecimal() else None


def write_last_run(root: Path, when: float) -> None:
    (root / LAST_RUN_FILE).write_text(str(int(when)))


def skip_reason(root: Path, min_interval_hours: float, now: float) -> str | None:
    """Explain why a run should be skipped, or None to proceed."""
    last = read_last_run(root)
    if last is None:
        return None
    elapsed = now - last
    if elapsed < min_interval_hours * 3600:
        hours = int(elapsed // 3600)
        return f"Last backup finished {hours}h ago; skipping to keep an every-other-day cadence."
    return None


def prune_finished(root: Path, keep: int) -> list[Path]:
    """Keep only the newest `keep` finished .tgz backups in `root`."""
    archives = sorted(
        root.glob(f"{BACKUP_PREFIX}*.tgz"), key=lambda p: p.stat().st_mtime, reverse=True
    )
    removed: list[Path] = []
    for old in archives[max(keep, 0) :]:
        with contextlib.suppress(FileNotFoundError):
            old.unlink()
            logger.info("Removed old backup: %s", old)
            removed.append(old)
    return removed


def run_daily(
    config: MacBackupConfig,
    pipeline: BackupPipeline | None = None,
    notifier: Callable[[str, str], bool] = notify,
    now: Callable[[], float] = time.time,
) -> DailyResult:
    """Run the scheduled backup as `tar --clean` unless one ran recently.

    Backups go to `schedule.root` (iCloud Drive by default) rather than
    `backup.root`.

    Raises:
        Whatever the pipeline raises; a failure notification is sent first
    """
    schedule = config.schedule
    root = schedule.root
    root.mkdir(parents=True, exist_ok=True)

    def send(message: str) -> None:
        if schedule.notify:
            notifier(message, NOTIFY_TITLE)

    reason = skip_reason(root, schedule.min_interval_hours, now())
    if reason is not None:
        logger.info(reason)
        send(reason)
        return DailyResult(skipped=True, reason=reason)

    send("Starting daily backup…")
    if pipeline is None:
        daily_config = config.model_copy(deep=True)
        daily_config.backup.root = root
        pipeline = BackupPipeline(daily_config)
    try:
        result = pipeline.run(fmt=BackupFormat.TAR, clean=True)
    except BaseException:
        send("Daily backup failed.")
        raise

    removed = prune_finished(root, schedule.keep)
    write_last_run(root, now())
    send("Daily backup completed.")
    return DailyResult(backup=result, removed=removed)
