"""Waiting on iCloud Drive download/upload state.

iCloud sync status is eventually consistent and only observable by polling
Spotlight metadata. Every wait here is advisory: missing tools, timeouts and
refused requests degrade to "continue without cloud optimization".
"""

import fnmatch
import logging
import time
from collections.abc import Callable
from pathlib import Path

from ..config import CloudConfig
from ..constants import BACKUP_PREFIX
from ..models import CloudOutcome
from ..services.cloud import CloudTools
from .retry import poll_until

logger = logging.getLogger(__name__)

ICLOUD_ROOT_PATTERNS = (
    "Library/Mobile Documents/*",
    "Library/CloudStorage/iCloud Drive/*",
    "Library/CloudStorage/iCloudDrive/*",
    "Library/CloudStorage/*/iCloud Drive/*",
)


def is_icloud_path(path: Path, home: Path | None = None) -> bool:
    """Whether `path` lives under a known iCloud Drive root."""
    home = home or Path.home()
    try:
        relative = path.expanduser().absolute().relative_to(home)
    except ValueError:
        return False
    text = relative.as_posix()
    return any(fnmatch.fnmatchcase(text, pattern) for pattern in ICLOUD_ROOT_PATTERNS)


class CloudWaiter:
    """Polls iCloud metadata before reading and after writing backups.

    Args:
        config: Polling budgets and intervals
        tools: Metadata and daemon helpers (discovered when omitted)
        home: Home directory used to recognize iCloud roots
        sleep: Sleep function, replaceable in tests
    """

    def __init__(
        self,
        config: CloudConfig | None = None,
        tools: CloudTools | None = None,
        home: Path | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or CloudConfig()
        self.tools = tools or CloudTools(brctl=self.config.brctl)
        self.home = home
        self.sleep = sleep

    def _poll(
        self,
        predicate: Callable[[], bool],
        attempts: int,
        on_retry: Callable[[int], None] | None = None,
    ) -> bool:
        return poll_until(
            predicate,
            interval=self.config.poll_interval,
            max_attempts=attempts,
            backoff=self.config.backoff,
            max_interval=self.config.max_interval,
            on_retry=on_retry,
            sleep=self.sleep,
        )

    def describe_tools(self) -> None:
        if self.tools.brctl:
            logger.info("Using brctl at: %s", self.tools.brctl)
        else:
            logger.info("brctl not found; iCloud eviction will be skipped.")

    def await_downloaded(self, path: Path) -> bool:
        """Wait until iCloud placeholders under `path` are materialized.

        Requests downloads along the way when brctl is available. Giving up
        is not an error: partially synced files are archived as they are.

        Returns:
            True if no pending placeholders remained
        """
        if not self.tools.can_search:
            logger.warning("'mdfind' not available; skipping iCloud check for %s", path)
            return False

        logger.info("Ensuring iCloud files are downloaded in: %s", path)
        self.tools.download(path)

        def all_downloaded() -> bool:
            pending = self.tools.pending_downloads(path)
            if not pending:
                return True
            logger.debug("%d iCloud item(s) pending download in %s", len(pending), path)
            for item in pending:
                self.tools.download(item)
            return False

        if self._poll(all_downloaded, self.config.download_attempts):
            logger.info("All iCloud items downloaded for: %s", path)
            return True
        logger.warning("Timed out waiting for iCloud in %s; continuing", path)
        return False

    def await_uploaded_then_evict(self, path: Path) -> CloudOutcome:
        """Wait for `path` to finish uploading, then request local eviction.

        Never raises for cloud conditions; the returned outcome says how far
        it got.
        """
        if not path.exists():
            return CloudOutcome.MISSING
        if not is_icloud_path(path, self.home):
            return CloudOutcome.NOT_CLOUD_PATH
        if not self.tools.can_query:
            logger.info("Can't verify iCloud status (mdls missing); leaving %s locally.", path)
            return CloudOutcome.NO_METADATA_TOOL

        if not self.tools.is_ubiquitous(path):
            logger.info("Waiting for iCloud to register %s", path)
            registered = self._poll(
                lambda: self.tools.is_ubiquitous(path), self.config.register_attempts
            )
            if not registered:
                logger.info("%s not marked as an iCloud item yet; skipping upload/evict.", path)
                return CloudOutcome.NOT_REGISTERED

        logger.info("Waiting for iCloud to upload %s", path)

        def report_progress(_attempt: int) -> None:
            percent = self.tools.percent_uploaded(path)
            if percent is not None:
                logger.info("Upload progress: %.0f%%", percent)

        uploaded = self._poll(
            lambda: self.tools.is_uploaded(path),
            self.config.upload_attempts,
            on_retry=report_progress,
        )
        if not uploaded:
            logger.warning("Timed out waiting for iCloud upload; leaving %s locally.", path)
            return CloudOutcome.UPLOAD_TIMEOUT

        logger.info("Upload complete: %s", path)
        if not self.tools.can_evict:
            logger.info("brctl not available; leaving local copy in place.")
            return CloudOutcome.UPLOADED
        if self.tools.evict(path):
            logger.info("Requested iCloud to evict local copy of %s (kept in cloud).", path)
            return CloudOutcome.EVICTED
        logger.warning("Could not evict local copy of %s (brctl failed).", path)
        return CloudOutcome.UPLOADED

    def offload_existing_backups(self, root: Path) -> dict[Path, CloudOutcome]:
        """Make earlier backups in an iCloud destination cloud-only.

        Returns:
            Outcome per existing backup item
        """
        if not root.is_dir() or not is_icloud_path(root, self.home):
            return {}

        logger.info("Ensuring existing backups in %s are cloud-only", root)
        # Materialize the listing so placeholders are visible
        self.tools.download(root)

        try:
            backups = sorted(p for p in root.iterdir() if p.name.startswith(BACKUP_PREFIX))
        except OSError as e:
            logger.warning("Cannot list %s (%s); skipping offload of existing backups", root, e)
            return {}
        if not backups:
            logger.info("No existing backups found to offload in %s", root)
            return {}

        outcomes: dict[Path, CloudOutcome] = {}
        for item in backups:
            logger.info("Found existing backup: %s", item)
            outcomes[item] = self.await_uploaded_then_evict(item)
        return outcomes
