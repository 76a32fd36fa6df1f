"""Status command: is a backup running right now?"""

import typer

from ..config import load_config
from ..core import lock_state
from ..core.lock_manager import lock_dir_for
from ..models import LockState
from ..output import get_output_context

EXIT_CODES = {
    LockState.RUNNING: 0,
    LockState.NOT_RUNNING: 1,
    LockState.STALE: 2,
}


def status() -> None:
    """Report whether a backup is running.

    Exit codes: 0 = running, 1 = not running, 2 = stale lock detected.
    """
    ctx = get_output_context()
    config = load_config(ctx.config_path)
    staging_root = config.staging.root

    state, pid = lock_state(staging_root)
    lock_dir = lock_dir_for(staging_root)

    if state is LockState.RUNNING:
        message = f"Backup is running with PID: {pid}"
    elif state is LockState.NOT_RUNNING:
        message = f"No backup is currently running (no lock at {lock_dir})."
    elif pid is None:
        message = f"Lock exists but records no PID: {lock_dir}"
    else:
        message = f"Stale backup lock found (PID {pid} not running)."

    ctx.result(
        {"state": state.value, "pid": pid, "lock_dir": str(lock_dir)},
        message=message,
    )
    raise typer.Exit(EXIT_CODES[state])
