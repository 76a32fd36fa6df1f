"""Shared test fixtures for macbackup tests."""

import subprocess
import sys
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from macbackup.config import CloudConfig, HomeSyncConfig, InventoryCommand, MacBackupConfig
from macbackup.constants import LOCK_DIR_NAME, LOCK_PID_FILE


@pytest.fixture(autouse=True)
def _clear_backup_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment from leaking into configs."""
    for name in ("BACKUP_ROOT", "STAGING_ROOT", "STAGING_RETENTION_DAYS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def staging_root(tmp_path: Path) -> Path:
    """Create temporary staging root."""
    d = tmp_path / "staging"
    d.mkdir()
    return d


@pytest.fixture
def dead_pid() -> int:
    """PID of a process that has already exited."""
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    return proc.pid


@pytest.fixture
def live_pid() -> Generator[int, None, None]:
    """PID of a running process other than the test process."""
    proc = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(60)"])
    try:
        yield proc.pid
    finally:
        proc.kill()
        proc.wait()


def write_lock(staging_root: Path, pid: int | str, entry: str | None = None) -> Path:
    """Create a lock directory the way another process would."""
    lock_dir = staging_root / LOCK_DIR_NAME
    lock_dir.mkdir(parents=True, exist_ok=True)
    (lock_dir / LOCK_PID_FILE).write_text(f"{pid}\n")
    if entry is not None:
        (lock_dir / "entry").write_text(f"{entry}\n")
    return lock_dir


class FakeCloudTools:
    """Scripted stand-in for CloudTools.

    Each flag sequence is consumed one value per query; the last value
    repeats once the sequence runs out.
    """

    def __init__(
        self,
        ubiquitous: list[bool] | None = None,
        uploaded: list[bool] | None = None,
        percents: list[float | None] | None = None,
        pending: list[list[Path]] | None = None,
        brctl: str | None = "/usr/bin/brctl",
        mdls: str | None = "/usr/bin/mdls",
        mdfind: str | None = "/usr/bin/mdfind",
        evict_ok: bool = True,
    ) -> None:
        self.brctl = brctl
        self.mdls = mdls
        self.mdfind = mdfind
        self._ubiquitous = list(ubiquitous or [True])
        self._uploaded = list(uploaded or [True])
        self._percents = list(percents or [None])
        self._pending = list(pending or [[]])
        self.evict_ok = evict_ok
        self.downloads: list[Path] = []
        self.evictions: list[Path] = []

    @staticmethod
    def _next(values: list[Any]) -> Any:
        return values.pop(0) if len(values) > 1 else values[0]

    @property
    def can_query(self) -> bool:
        return self.mdls is not None

    @property
    def can_search(self) -> bool:
        return self.mdfind is not None

    @property
    def can_evict(self) -> bool:
        return self.brctl is not None

    def is_ubiquitous(self, path: Path) -> bool:
        return self._next(self._ubiquitous)

    def is_uploaded(self, path: Path) -> bool:
        return self._next(self._uploaded)

    def percent_uploaded(self, path: Path) -> float | None:
        return self._next(self._percents)

    def pending_downloads(self, path: Path) -> list[Path]:
        return self._next(self._pending)

    def download(self, path: Path) -> bool:
        if self.brctl is None:
            return False
        self.downloads.append(path)
        return True

    def evict(self, path: Path) -> bool:
        if self.brctl is None:
            return False
        self.evictions.append(path)
        return self.evict_ok


@pytest.fixture
def fast_cloud() -> CloudConfig:
    """Cloud config with tiny budgets and no waiting."""
    return CloudConfig(
        poll_interval=0,
        register_attempts=3,
        upload_attempts=5,
        download_attempts=3,
    )


@pytest.fixture
def icloud_home(tmp_path: Path) -> Path:
    """Fake home directory with an iCloud Drive backup folder."""
    home = tmp_path / "home"
    (home / "Library" / "Mobile Documents" / "com~apple~CloudDocs" / "Backups").mkdir(
        parents=True
    )
    return home


@pytest.fixture
def minimal_config(tmp_path: Path) -> MacBackupConfig:
    """Config that runs quickly without rsync, sudo or iCloud."""
    config = MacBackupConfig()
    config.backup.root = tmp_path / "dest"
    config.staging.root = tmp_path / "staging"
    config.home = HomeSyncConfig(enabled=False)
    config.copies = []
    config.inventory = [
        InventoryCommand(
            name="greeting",
            command=["echo", "hello"],
            output="lists/greeting.txt",
            description="Greeting",
            optional=False,
        ),
        InventoryCommand(
            name="absent",
            command=["definitely-not-installed-xyz"],
            output="lists/absent.txt",
            description="Absent tool",
            optional=False,
        ),
    ]
    config.cloud.offload_existing = False
    config.archives.enabled = False
    return config
