"""Staging session: lock, signal handling and pruning around a backup run."""

import logging
import signal
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from types import FrameType

from .lock_manager import RunLock
from .pruner import prune_staging

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

SignalHandler = Callable[[int, FrameType | None], object] | int | None


class Terminated(SystemExit):
    """Raised inside the run when a termination signal arrives."""

    def __init__(self, signum: int) -> None:
        super().__init__(128 + signum)
        self.signum = signum


def _raise_terminated(signum: int, _frame: FrameType | None) -> None:
    logger.warning("Received %s; cleaning up", signal.Signals(signum).name)
    raise Terminated(signum)


def _install_signal_handlers() -> dict[int, SignalHandler]:
    # signal.signal only works from the main thread
    if threading.current_thread() is not threading.main_thread():
        return {}
    return {sig: signal.signal(sig, _raise_terminated) for sig in HANDLED_SIGNALS}


def _restore_signal_handlers(previous: dict[int, SignalHandler]) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler if handler is not None else signal.SIG_DFL)


@dataclass
class StagingSession:
    """State shared with the run while the session is open."""

    staging_root: Path
    lock: RunLock
    retention_days: int | str | None
    keep: list[Path] = field(default_factory=list)
    pruned: list[Path] = field(default_factory=list)

    def protect(self, entry: Path) -> None:
        """Mark the entry being built; pruning leaves it alone while locked."""
        self.lock.protect(entry.name)


@contextmanager
def staging_session(
    staging_root: Path,
    retention_days: int | str | None,
    pid: int | None = None,
) -> Iterator[StagingSession]:
    """Hold the staging lock for the duration of a run.

    On every exit path (normal return, exception, SIGINT, SIGTERM) the
    previous signal handlers are restored, the lock is released, and old
    staging entries are pruned. Pruning failures are logged, never raised.

    Raises:
        LockError: If another live process holds the lock
    """
    staging_root.mkdir(parents=True, exist_ok=True)
    lock = RunLock(staging_root, pid=pid)
    lock.acquire()
    session = StagingSession(staging_root=staging_root, lock=lock, retention_days=retention_days)
    previous = _install_signal_handlers()
    try:
        yield session
    finally:
        _restore_signal_handlers(previous)
        lock.release()
        try:
            session.pruned = prune_staging(staging_root, retention_days, protected=session.keep)
        except Exception as e:
            logger.warning("Staging prune failed: %s", e)
