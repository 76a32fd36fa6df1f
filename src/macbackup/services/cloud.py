"""iCloud Drive tooling: Spotlight metadata queries and the brctl daemon helper.

All operations here are advisory. Missing tools and failed requests are
reported through return values, never raised.
"""

import logging
from pathlib import Path

from ..constants import BRCTL_FALLBACK, CLOUD_COMMAND_TIMEOUT
from .commands import CommandError, find_executable, run_command, try_command

logger = logging.getLogger(__name__)

ATTR_IS_UBIQUITOUS = "kMDItemFSIsUbiquitous"
ATTR_IS_UPLOADED = "kMDItemUbiquitousItemIsUploaded"
ATTR_IS_DOWNLOADED = "kMDItemUbiquitousItemIsDownloaded"
ATTR_PERCENT_UPLOADED = "kMDItemUbiquitousItemPercentUploaded"

PENDING_DOWNLOAD_QUERY = f"{ATTR_IS_UBIQUITOUS} == 1 && {ATTR_IS_DOWNLOADED} == 0"


class CloudTools:
    """Thin wrapper around mdls, mdfind and brctl.

    Args:
        brctl: Explicit brctl path; discovered on PATH or in the
            CloudDocsDaemon framework when omitted
        mdls: Explicit mdls path (discovered when omitted)
        mdfind: Explicit mdfind path (discovered when omitted)
    """

    def __init__(
        self,
        brctl: str | None = None,
        mdls: str | None = None,
        mdfind: str | None = None,
        timeout: float = CLOUD_COMMAND_TIMEOUT,
    ) -> None:
        self.brctl = brctl or find_executable("brctl", fallbacks=[BRCTL_FALLBACK])
        self.mdls = mdls or find_executable("mdls")
        self.mdfind = mdfind or find_executable("mdfind")
        self.timeout = timeout

    @property
    def can_query(self) -> bool:
        return self.mdls is not None

    @property
    def can_search(self) -> bool:
        return self.mdfind is not None

    @property
    def can_evict(self) -> bool:
        return self.brctl is not None

    def attribute(self, path: Path, name: str) -> str | None:
        """Read one raw metadata attribute, or None if unavailable."""
        if self.mdls is None:
            return None
        try:
            result = run_command(
                [self.mdls, "-raw", "-name", name, str(path)], timeout=self.timeout
            )
        except CommandError as e:
            logger.debug("mdls failed for %s: %s", path, e)
            return None
        value = result.stdout.strip()
        if not value or value == "(null)":
            return None
        return value

    def flag(self, path: Path, name: str) -> bool:
        return self.attribute(path, name) == "1"

    def is_ubiquitous(self, path: Path) -> bool:
        return self.flag(path, ATTR_IS_UBIQUITOUS)

    def is_uploaded(self, path: Path) -> bool:
        return self.flag(path, ATTR_IS_UPLOADED)

    def percent_uploaded(self, path: Path) -> float | None:
        raw = self.attribute(path, ATTR_PERCENT_UPLOADED)
        if raw is None:
            return None
        digits = "".join(ch for ch in raw if ch.isdigit() or ch == ".")
        try:
            return float(digits)
        except ValueError:
            return None

    def pending_downloads(self, path: Path) -> list[Path]:
        """List iCloud placeholders under `path` that are not yet local."""
        if self.mdfind is None:
            return []
        try:
            result = run_command(
                [self.mdfind, "-onlyin", str(path), PENDING_DOWNLOAD_QUERY],
                timeout=self.timeout,
                check=False,
            )
        except CommandError as e:
            logger.debug("mdfind failed for %s: %s", path, e)
            return []
        return [Path(line) for line in result.stdout.splitlines() if line.strip()]

    def download(self, path: Path) -> bool:
        """Ask the cloud daemon to materialize `path` locally."""
        if self.brctl is None:
            return False
        return try_command([self.brctl, "download", str(path)], timeout=self.timeout)

    def evict(self, path: Path) -> bool:
        """Ask the cloud daemon to drop the local copy of `path`."""
        if self.brctl is None:
            return False
        return try_command([self.brctl, "evict", str(path)], timeout=self.timeout)
