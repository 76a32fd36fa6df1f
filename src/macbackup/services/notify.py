"""Desktop notifications via osascript."""

import logging
import os
import pwd
import shutil
import subprocess

from ..constants import NOTIFY_TIMEOUT

logger = logging.getLogger(__name__)

OSASCRIPT = "/usr/bin/osascript"


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _script(message: str, title: str) -> str:
    return f'display notification "{_escape(message)}" with title "{_escape(title)}"'


def _console_user() -> tuple[str, int] | None:
    """Owner of /dev/console, i.e. the logged-in GUI user."""
    try:
        st = os.stat("/dev/console")
    except OSError:
        return None
    try:
        return pwd.getpwuid(st.st_uid).pw_name, st.st_uid
    except KeyError:
        return None


def notify(message: str, title: str = "macbackup") -> bool:
    """Show a notification; never raises.

    Tries a direct osascript call first. When running outside the GUI
    session, targets the console user through launchctl asuser.

    Returns:
        True if a notification command succeeded
    """
    osascript = shutil.which("osascript") or (OSASCRIPT if os.path.exists(OSASCRIPT) else None)
    if osascript is None:
        logger.debug("osascript not available; notification skipped: %s", message)
        return False

    script = _script(message, title)
    attempts = [[osascript, "-e", script]]
    user = _console_user()
    if user is not None and user[1] != os.getuid():
        name, uid = user
        attempts.append(
            ["launchctl", "asuser", str(uid), "sudo", "-u", name, osascript, "-e", script]
        )

    for args in attempts:
        try:
            result = subprocess.run(args, capture_output=True, timeout=NOTIFY_TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug("Notification attempt failed: %s", e)
            continue
        if result.returncode == 0:
            return True

    logger.warning("Failed to send notification: %s", message)
    return False
