"""Tests for desktop notifications."""

import subprocess
from unittest import mock

from macbackup.services.notify import _script, notify


class TestNotify:
    """Tests for notify."""

    def test_script_escapes_quotes(self) -> None:
        assert _script('say "hi"', "T") == 'display notification "say \\"hi\\"" with title "T"'

    def test_without_osascript(self) -> None:
        with mock.patch("macbackup.services.notify.shutil.which", return_value=None), mock.patch(
            "macbackup.services.notify.os.path.exists", return_value=False
        ):
            assert notify("hello") is False

    def test_direct_call_succeeds(self) -> None:
        done = subprocess.CompletedProcess(args=[], returncode=0)
        with mock.patch(
            "macbackup.services.notify.shutil.which", return_value="/usr/bin/osascript"
        ), mock.patch(
            "macbackup.services.notify.subprocess.run", return_value=done
        ) as run:
            assert notify("hello", "Daily Backup") is True
        assert run.call_count == 1
        assert run.call_args.args[0][0] == "/usr/bin/osascript"

    def test_all_attempts_fail(self) -> None:
        failed = subprocess.CompletedProcess(args=[], returncode=1)
        with mock.patch(
            "macbackup.services.notify.shutil.which", return_value="/usr/bin/osascript"
        ), mock.patch("macbackup.services.notify.subprocess.run", return_value=failed):
            assert notify("hello") is False
