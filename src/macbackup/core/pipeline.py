"""Backup pipeline: assemble a staging entry, package it, ship it.

The run is strictly sequential. Everything except lock contention and
packaging failures is best-effort: missing tools and failed copies are
logged and the backup carries on.
"""

import logging
import os
import shutil
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from ..config import MacBackupConfig
from ..constants import (
    BACKUP_PREFIX,
    INVENTORY_TIMEOUT,
    LOG_FILE_NAME,
    STAMP_FORMAT,
    SUMMARY_FILE_NAME,
)
from ..logging import attach_run_log, detach_run_log
from ..models import BackupFormat, BackupResult
from ..services.commands import CommandError, find_executable
from ..services.filesystem import (
    expand_source,
    force_remove,
    human_size,
    path_size,
    rsync,
    stream_to_file,
)
from .archive import ArchiveError, create_tar, create_zip
from .cloud_waiter import CloudWaiter
from .manifest import (
    ARCHIVES_DIR,
    FILES_DIR,
    HOME_DIR,
    LISTS_DIR,
    archive_name,
    build_manifest,
    check_directory,
    format_check,
)
from .privileges import SudoKeepAlive
from .session import StagingSession, staging_session

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Error that aborts a backup run."""


class BackupPipeline:
    """Runs one backup from staging to final destination.

    Args:
        config: Loaded configuration
        waiter: iCloud readiness waiter (built from config when omitted)
        keepalive: sudo refresher used when the catalog has system paths
        home: Home directory to back up (default: current user's)
        clock: Source of the run timestamp
    """

    def __init__(
        self,
        config: MacBackupConfig,
        waiter: CloudWaiter | None = None,
        keepalive: SudoKeepAlive | None = None,
        home: Path | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config
        self.home = home or Path.home()
        self.waiter = waiter or CloudWaiter(config.cloud, home=self.home)
        self.keepalive = keepalive or SudoKeepAlive()
        self.clock = clock

    def run(
        self,
        fmt: BackupFormat | None = None,
        clean: bool | None = None,
        archives: bool | None = None,
    ) -> BackupResult:
        """Run a backup under the staging lock.

        Args:
            fmt: Packaging format (default from config)
            clean: Remove the staged folder after archiving (default from config)
            archives: Archive large user folders (default from config)

        Returns:
            Result describing the final artifact

        Raises:
            LockError: If another backup holds the staging lock
            PipelineError: If packaging or moving the backup fails
        """
        fmt = fmt or self.config.backup.format
        clean = self.config.backup.clean if clean is None else clean
        archives = self.config.archives.enabled if archives is None else archives

        staging = self.config.staging
        with staging_session(staging.root, staging.retention_days) as session:
            return self._run(session, fmt, clean, archives)

    def _run(
        self, session: StagingSession, fmt: BackupFormat, clean: bool, archives: bool
    ) -> BackupResult:
        stamp = self.clock().strftime(STAMP_FORMAT)
        entry = session.staging_root / f"{BACKUP_PREFIX}{stamp}"
        for sub in (FILES_DIR, LISTS_DIR, ARCHIVES_DIR):
            (entry / sub).mkdir(parents=True, exist_ok=True)
        session.protect(entry)

        log_handler = attach_run_log(entry / LOG_FILE_NAME)
        try:
            root = self.config.backup.root
            logger.info("Staging backup at: %s", entry)
            logger.info("Final destination root: %s", root)
            logger.info("Logging to: %s", entry / LOG_FILE_NAME)
            self.waiter.describe_tools()

            if self.config.cloud.offload_existing:
                self.waiter.offload_existing_backups(root)

            missing_tools = self.capture_inventory(entry)
            self.copy_catalog(entry / FILES_DIR)
            if self.config.home.enabled:
                self.sync_home(entry / HOME_DIR)
            if archives:
                self.archive_folders(entry / ARCHIVES_DIR)
            else:
                logger.info("Skipping user folder archives (--no-archives).")

            logger.info("Backup complete (staged): %s", entry)
            self.write_summary(entry, fmt, clean, archives, missing_tools)

            staged_bytes = path_size(entry)
            logger.info("Staged backup size: %s", human_size(staged_bytes))
            output = self.package(entry, fmt)

            cleaned = False
            if clean:
                cleaned = self.clean_staged(entry, fmt)

            cloud = None
            if fmt is not BackupFormat.DIR:
                cloud = self.waiter.await_uploaded_then_evict(output)

            logger.info("Done. Backup ready at: %s", output)
            return BackupResult(
                stamp=stamp,
                staged_dir=entry,
                output_path=output,
                format=fmt,
                cleaned=cleaned,
                cloud=cloud,
                staged_bytes=staged_bytes,
                final_bytes=path_size(output),
            )
        except BaseException:
            if clean and entry.exists():
                force_remove(entry)
            raise
        finally:
            detach_run_log(log_handler)

    def capture_inventory(self, entry: Path) -> list[str]:
        """Write software inventories; returns names whose tool was missing."""
        missing: list[str] = []
        for inv in self.config.inventory:
            if find_executable(inv.command[0]) is None:
                logger.debug("%s not installed; skipping %s", inv.command[0], inv.name)
                missing.append(inv.name)
                continue
            args = [os.path.expanduser(a) if a.startswith("~") else a for a in inv.command]
            if not stream_to_file(args, entry / inv.output, timeout=INVENTORY_TIMEOUT):
                logger.debug("Inventory %s produced no output", inv.name)
        return missing

    def copy_catalog(self, files_dir: Path) -> int:
        """Copy every configured source that exists.

        Returns:
            Number of sources copied without error
        """
        copied = 0
        needs_sudo = any(item.sudo for item in self.config.copies)
        sudo_ok = self.keepalive.start() if needs_sudo else False
        try:
            for item in self.config.copies:
                sources = expand_source(item.source)
                if not sources:
                    logger.debug("Skipping missing source: %s", item.source)
                    continue
                if item.sudo and not sudo_ok:
                    logger.info("Skipping %s (no sudo credentials)", item.source)
                    continue
                if item.description:
                    logger.info("Backing up %s", item.description)
                for source in sources:
                    try:
                        status = rsync(source, files_dir / item.dest, sudo=item.sudo)
                    except CommandError as e:
                        logger.warning("Could not copy %s: %s", source, e)
                        continue
                    if status == 0:
                        copied += 1
                    else:
                        logger.warning("Copy of %s finished with status %d", source, status)
        finally:
            self.keepalive.stop()
        return copied

    def sync_home(self, dest: Path) -> int:
        """Rsync the whole home folder with the configured excludes.

        The folder itself is copied, so the backup holds `User_Folder/<user>/`.
        """
        logger.info("Rsyncing your entire home folder")
        try:
            status = rsync(
                str(self.home).rstrip("/"),
                dest,
                excludes=self.config.home.excludes,
                extra_args=["--ignore-errors"],
            )
        except CommandError as e:
            logger.warning("Home folder copy skipped: %s", e)
            return 1
        if status != 0:
            logger.warning(
                "Home folder rsync completed with status %d (likely permission-denied files).",
                status,
            )
        return status

    def archive_folders(self, archives_dir: Path) -> list[Path]:
        """Archive large user folders after their iCloud content is local."""
        archives = self.config.archives
        logger.info("Archiving selected folders (%s)", ", ".join(archives.folders))
        created: list[Path] = []
        for rel in archives.folders:
            source = self.home / rel
            if not source.is_dir():
                logger.info("Skipping missing folder: %s", source)
                continue
            self.waiter.await_downloaded(source)
            excludes = list(archives.excludes)
            if rel == "Pictures":
                excludes.extend(archives.pictures_excludes)
            out = archives_dir / archive_name(rel)
            logger.info("Creating archive: %s", out)
            try:
                created.append(create_tar(self.home, rel, out, excludes))
            except ArchiveError as e:
                logger.warning("Failed to archive %s: %s", source, e)
        return created

    def write_summary(
        self,
        entry: Path,
        fmt: BackupFormat,
        clean: bool,
        archives: bool,
        missing_tools: list[str],
    ) -> Path:
        """Write backup_summary.txt inside the staging entry."""
        manifest = [
            e for e in build_manifest(self.config, missing_tools) if e.path != SUMMARY_FILE_NAME
        ]
        lines = [
            f"Backup summary for {entry}",
            f"Created: {self.clock().isoformat(timespec='seconds')}",
            f"Format: {fmt.value}  | Clean after archive: {clean}  | Archives enabled: {archives}",
            "",
        ]
        lines.extend(format_check(c) for c in check_directory(manifest, entry))
        if not archives:
            lines.append("ℹ️  Archives disabled (--no-archives); user folders not packaged.")
        lines.append("")

        summary = entry / SUMMARY_FILE_NAME
        summary.write_text("\n".join(lines) + "\n")
        for line in lines:
            if line:
                logger.info(line)
        return summary

    def package(self, entry: Path, fmt: BackupFormat) -> Path:
        """Package the entry and move it into the backup root.

        Raises:
            PipelineError: If archiving or moving fails
        """
        root = self.config.backup.root
        try:
            root.mkdir(parents=True, exist_ok=True)
            if fmt is BackupFormat.DIR:
                logger.info("Moving backup folder to %s", root)
                output = root / entry.name
                shutil.move(entry, output)
            else:
                suffix = ".tgz" if fmt is BackupFormat.TAR else ".zip"
                staged = entry.with_name(entry.name + suffix)
                logger.info("Creating %s archive in staging", fmt.value)
                if fmt is BackupFormat.TAR:
                    create_tar(entry.parent, entry.name, staged)
                else:
                    create_zip(entry, staged)
                output = root / staged.name
                shutil.move(staged, output)
        except (OSError, ArchiveError) as e:
            raise PipelineError(f"Failed to package backup: {e}") from e

        logger.info("Backup at: %s (%s)", output, human_size(path_size(output)))
        return output

    def clean_staged(self, entry: Path, fmt: BackupFormat) -> bool:
        """Remove the staged folder after archiving."""
        if fmt is BackupFormat.DIR:
            logger.warning("--clean has no effect with 'dir' format; keeping folder.")
            return False
        logger.info("Removing original backup folder: %s", entry)
        if force_remove(entry):
            logger.info("Removed backup folder.")
            return True
        logger.warning(
            "Failed to fully remove backup folder. Configure passwordless sudo for "
            "cleanup to allow unattended runs. Remaining at: %s",
            entry,
        )
        return False
