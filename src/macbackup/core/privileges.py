"""Keep cached sudo credentials alive during long copies."""

import logging
import os
import shutil
import subprocess
import threading
from types import TracebackType

from ..constants import SUDO_REFRESH_INTERVAL
from .lock_manager import _is_pid_running

logger = logging.getLogger(__name__)


class SudoKeepAlive:
    """Background refresher for the sudo timestamp.

    A daemon thread runs `sudo -n -v` every `interval` seconds and exits
    once the owner process is gone or `stop()` is called. It never prompts;
    if no cached credentials exist, sudo-backed copies simply fail and are
    reported as warnings.

    Args:
        interval: Seconds between refreshes
        owner_pid: Process whose liveness bounds the loop (default: current)
    """

    def __init__(self, interval: float = SUDO_REFRESH_INTERVAL, owner_pid: int | None = None):
        self.interval = interval
        self.owner_pid = owner_pid if owner_pid is not None else os.getpid()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @staticmethod
    def refresh() -> bool:
        """Refresh cached credentials without prompting."""
        try:
            result = subprocess.run(["sudo", "-n", "-v"], capture_output=True, timeout=30)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("sudo refresh failed: %s", e)
            return False
        return result.returncode == 0

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            if not _is_pid_running(self.owner_pid):
                break
            self.refresh()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start refreshing.

        Returns:
            True if sudo credentials are cached and the refresher started
        """
        if shutil.which("sudo") is None:
            logger.info("sudo not available; system-owned paths will be skipped.")
            return False
        if not self.refresh():
            logger.info("No cached sudo credentials; system-owned paths may be skipped.")
            return False
        if self.running:
            return True
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="sudo-keepalive", daemon=True)
        self._thread.start()
        return True

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None

    def __enter__(self) -> "SudoKeepAlive":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
