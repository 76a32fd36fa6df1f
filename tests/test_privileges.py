"""Tests for the sudo keep-alive."""

import time
from unittest import mock

from macbackup.core.privileges import SudoKeepAlive


class TestSudoKeepAlive:
    """Tests for SudoKeepAlive."""

    def test_no_sudo_binary(self) -> None:
        with mock.patch("macbackup.core.privileges.shutil.which", return_value=None):
            keepalive = SudoKeepAlive()
            assert keepalive.start() is False
        assert keepalive.running is False

    def test_no_cached_credentials(self) -> None:
        with mock.patch(
            "macbackup.core.privileges.shutil.which", return_value="/usr/bin/sudo"
        ), mock.patch.object(SudoKeepAlive, "refresh", return_value=False):
            keepalive = SudoKeepAlive()
            assert keepalive.start() is False
        assert keepalive.running is False

    def test_refreshes_until_stopped(self) -> None:
        with mock.patch(
            "macbackup.core.privileges.shutil.which", return_value="/usr/bin/sudo"
        ), mock.patch.object(SudoKeepAlive, "refresh", return_value=True) as refresh:
            with SudoKeepAlive(interval=0.01) as keepalive:
                assert keepalive.running
                time.sleep(0.1)
            assert refresh.call_count > 1
        assert keepalive.running is False

    def test_exits_when_owner_dies(self, dead_pid: int) -> None:
        with mock.patch(
            "macbackup.core.privileges.shutil.which", return_value="/usr/bin/sudo"
        ), mock.patch.object(SudoKeepAlive, "refresh", return_value=True):
            keepalive = SudoKeepAlive(interval=0.01, owner_pid=dead_pid)
            assert keepalive.start() is True
            deadline = time.monotonic() + 2
            while keepalive.running and time.monotonic() < deadline:
                time.sleep(0.01)
            assert keepalive.running is False
            keepalive.stop()
