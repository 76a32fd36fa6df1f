"""Tests for the backup pipeline."""

import os
import tarfile
from datetime import datetime
from pathlib import Path
from unittest import mock

import pytest
from conftest import FakeCloudTools, write_lock
from macbackup.config import CopyItem, MacBackupConfig
from macbackup.constants import LOCK_DIR_NAME, LOG_FILE_NAME, SUMMARY_FILE_NAME
from macbackup.core import BackupPipeline, CloudWaiter, LockError, PipelineError
from macbackup.core.archive import ArchiveError, list_members
from macbackup.core.privileges import SudoKeepAlive
from macbackup.models import BackupFormat, CloudOutcome

STAMP = "20260102_030405"
ENTRY = f"System_Backup_{STAMP}"


class IdleKeepAlive(SudoKeepAlive):
    """Keepalive that never touches sudo."""

    def __init__(self, available: bool = False) -> None:
        super().__init__(interval=3600)
        self.available = available
        self.started = 0

    def start(self) -> bool:
        self.started += 1
        return self.available


def make_pipeline(config: MacBackupConfig, home: Path | None = None) -> BackupPipeline:
    waiter = CloudWaiter(
        config.cloud, tools=FakeCloudTools(mdfind=None), home=home, sleep=lambda _s: None
    )
    return BackupPipeline(
        config,
        waiter=waiter,
        keepalive=IdleKeepAlive(),
        home=home,
        clock=lambda: datetime(2026, 1, 2, 3, 4, 5),
    )


class TestFormats:
    """Tests for each packaging format."""

    def test_dir_moves_folder(self, minimal_config: MacBackupConfig) -> None:
        result = make_pipeline(minimal_config).run(fmt=BackupFormat.DIR)
        dest = minimal_config.backup.root / ENTRY
        assert result.output_path == dest
        assert result.stamp == STAMP
        assert result.cloud is None
        assert (dest / "lists" / "greeting.txt").read_text().strip() == "hello"
        assert (dest / SUMMARY_FILE_NAME).exists()
        assert (dest / LOG_FILE_NAME).exists()
        assert not (minimal_config.staging.root / ENTRY).exists()

    def test_tar_with_clean(self, minimal_config: MacBackupConfig) -> None:
        result = make_pipeline(minimal_config).run(fmt=BackupFormat.TAR, clean=True)
        archive = minimal_config.backup.root / f"{ENTRY}.tgz"
        assert result.output_path == archive
        assert result.cleaned is True
        assert result.cloud is CloudOutcome.NOT_CLOUD_PATH
        assert result.final_bytes > 0
        with tarfile.open(archive) as tar:
            names = tar.getnames()
        assert f"{ENTRY}/lists/greeting.txt" in names
        assert not (minimal_config.staging.root / ENTRY).exists()

    def test_tar_without_clean_keeps_staged(self, minimal_config: MacBackupConfig) -> None:
        result = make_pipeline(minimal_config).run(fmt=BackupFormat.TAR, clean=False)
        assert result.cleaned is False
        assert (minimal_config.staging.root / ENTRY).is_dir()

    def test_zip(self, minimal_config: MacBackupConfig) -> None:
        result = make_pipeline(minimal_config).run(fmt=BackupFormat.ZIP, clean=True)
        assert result.output_path.name == f"{ENTRY}.zip"
        members = list_members(result.output_path)
        assert f"{ENTRY}/{SUMMARY_FILE_NAME}" in members

    def test_clean_ignored_for_dir(self, minimal_config: MacBackupConfig) -> None:
        result = make_pipeline(minimal_config).run(fmt=BackupFormat.DIR, clean=True)
        assert result.cleaned is False
        assert result.output_path.is_dir()


class TestSummary:
    """Tests for the summary written into the backup."""

    def test_missing_tool_reported_optional(self, minimal_config: MacBackupConfig) -> None:
        result = make_pipeline(minimal_config).run(fmt=BackupFormat.DIR)
        summary = (result.output_path / SUMMARY_FILE_NAME).read_text()
        assert "✅ Greeting → lists/greeting.txt" in summary
        assert "Absent tool missing (optional)" in summary
        assert "Archives disabled" in summary


class TestLocking:
    """Tests for staging lock behavior."""

    def test_lock_released_after_run(self, minimal_config: MacBackupConfig) -> None:
        make_pipeline(minimal_config).run(fmt=BackupFormat.TAR, clean=False)
        assert not (minimal_config.staging.root / LOCK_DIR_NAME).exists()

    def test_live_lock_blocks_run(self, minimal_config: MacBackupConfig) -> None:
        minimal_config.staging.root.mkdir(parents=True)
        write_lock(minimal_config.staging.root, 424242)
        with mock.patch("macbackup.core.lock_manager._is_pid_running", return_value=True):
            with pytest.raises(LockError, match="already running"):
                make_pipeline(minimal_config).run(fmt=BackupFormat.DIR)
        assert not minimal_config.backup.root.exists()

    def test_stale_lock_reclaimed(self, minimal_config: MacBackupConfig, dead_pid: int) -> None:
        minimal_config.staging.root.mkdir(parents=True)
        write_lock(minimal_config.staging.root, dead_pid)
        result = make_pipeline(minimal_config).run(fmt=BackupFormat.DIR)
        assert result.output_path.is_dir()

    def test_old_entries_pruned_after_run(self, minimal_config: MacBackupConfig) -> None:
        old = minimal_config.staging.root / "System_Backup_20200101_000000"
        old.mkdir(parents=True)
        os.utime(old, (1_000_000, 1_000_000))
        make_pipeline(minimal_config).run(fmt=BackupFormat.TAR, clean=False)
        assert not old.exists()
        assert (minimal_config.staging.root / ENTRY).exists()


class TestFailures:
    """Tests for failure handling."""

    def test_packaging_failure_raises_and_cleans(self, minimal_config: MacBackupConfig) -> None:
        with mock.patch(
            "macbackup.core.pipeline.create_tar", side_effect=ArchiveError("disk full")
        ):
            with pytest.raises(PipelineError, match="disk full"):
                make_pipeline(minimal_config).run(fmt=BackupFormat.TAR, clean=True)
        assert not (minimal_config.staging.root / ENTRY).exists()
        assert not (minimal_config.staging.root / LOCK_DIR_NAME).exists()

    def test_interrupt_releases_lock(self, minimal_config: MacBackupConfig) -> None:
        pipeline = make_pipeline(minimal_config)
        with mock.patch.object(pipeline, "copy_catalog", side_effect=KeyboardInterrupt):
            with pytest.raises(KeyboardInterrupt):
                pipeline.run(fmt=BackupFormat.TAR, clean=False)
        assert not (minimal_config.staging.root / LOCK_DIR_NAME).exists()
        assert (minimal_config.staging.root / ENTRY).exists()


class TestArchives:
    """Tests for user folder archives."""

    def test_archives_created_with_excludes(
        self, minimal_config: MacBackupConfig, tmp_path: Path
    ) -> None:
        home = tmp_path / "home"
        (home / "Desktop" / "app" / "node_modules").mkdir(parents=True)
        (home / "Desktop" / "app" / "node_modules" / "x.js").write_text("x")
        (home / "Desktop" / "todo.txt").write_text("todo")
        minimal_config.archives.folders = ["Desktop", "Movies"]

        result = make_pipeline(minimal_config, home=home).run(
            fmt=BackupFormat.DIR, archives=True
        )
        archive = result.output_path / "archives" / "Desktop.tar.gz"
        members = list_members(archive)
        assert "Desktop/todo.txt" in members
        assert not any("node_modules" in m for m in members)
        assert not (result.output_path / "archives" / "Movies.tar.gz").exists()


class TestCopyCatalog:
    """Tests for the copy catalog."""

    def test_sudo_items_skipped_without_credentials(
        self, minimal_config: MacBackupConfig, tmp_path: Path
    ) -> None:
        source = tmp_path / "src"
        source.mkdir()
        minimal_config.copies = [CopyItem(source=f"{source}/", dest="sys/", sudo=True)]
        pipeline = make_pipeline(minimal_config)
        with mock.patch("macbackup.core.pipeline.rsync") as rsync:
            copied = pipeline.copy_catalog(tmp_path / "files")
        assert copied == 0
        rsync.assert_not_called()
        assert pipeline.keepalive.started == 1

    def test_missing_sources_skipped(
        self, minimal_config: MacBackupConfig, tmp_path: Path
    ) -> None:
        present = tmp_path / "present"
        present.mkdir()
        minimal_config.copies = [
            CopyItem(source=str(tmp_path / "absent/"), dest="a/"),
            CopyItem(source=f"{present}/", dest="p/"),
        ]
        pipeline = make_pipeline(minimal_config)
        with mock.patch("macbackup.core.pipeline.rsync", return_value=0) as rsync:
            copied = pipeline.copy_catalog(tmp_path / "files")
        assert copied == 1
        rsync.assert_called_once_with(f"{present}/", tmp_path / "files" / "p/", sudo=False)
        assert pipeline.keepalive.started == 0


class TestSyncHome:
    """Tests for the home folder copy."""

    def test_copies_home_folder_itself(
        self, minimal_config: MacBackupConfig, tmp_path: Path
    ) -> None:
        """The source has no trailing slash so rsync nests it under its own name."""
        home = tmp_path / "alice"
        home.mkdir()
        pipeline = make_pipeline(minimal_config, home=home)
        with mock.patch("macbackup.core.pipeline.rsync", return_value=0) as rsync:
            status = pipeline.sync_home(tmp_path / "User_Folder")
        assert status == 0
        source, dest = rsync.call_args.args
        assert source == str(home)
        assert not source.endswith("/")
        assert dest == tmp_path / "User_Folder"
        assert rsync.call_args.kwargs["excludes"] == minimal_config.home.excludes

    def test_nonzero_status_is_not_fatal(
        self, minimal_config: MacBackupConfig, tmp_path: Path
    ) -> None:
        pipeline = make_pipeline(minimal_config, home=tmp_path)
        with mock.patch("macbackup.core.pipeline.rsync", return_value=23):
            assert pipeline.sync_home(tmp_path / "User_Folder") == 23
