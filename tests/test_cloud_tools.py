"""Tests for mdls/mdfind/brctl wrappers."""

import subprocess
from pathlib import Path
from unittest import mock

from macbackup.services.cloud import (
    ATTR_IS_UBIQUITOUS,
    ATTR_IS_UPLOADED,
    PENDING_DOWNLOAD_QUERY,
    CloudTools,
)
from macbackup.services.commands import CommandError


def completed(stdout: str = "", returncode: int = 0) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr="")


def tools() -> CloudTools:
    return CloudTools(brctl="/bin/brctl", mdls="/bin/mdls", mdfind="/bin/mdfind")


class TestMetadata:
    """Tests for attribute queries."""

    def test_flag_true_when_attribute_is_one(self) -> None:
        with mock.patch(
            "macbackup.services.cloud.run_command", return_value=completed("1\n")
        ) as run:
            assert tools().is_ubiquitous(Path("/x")) is True
        run.assert_called_once()
        assert run.call_args.args[0] == ["/bin/mdls", "-raw", "-name", ATTR_IS_UBIQUITOUS, "/x"]

    def test_flag_false_for_null(self) -> None:
        with mock.patch("macbackup.services.cloud.run_command", return_value=completed("(null)")):
            assert tools().is_uploaded(Path("/x")) is False

    def test_flag_false_when_mdls_fails(self) -> None:
        with mock.patch(
            "macbackup.services.cloud.run_command", side_effect=CommandError("boom")
        ):
            assert tools().flag(Path("/x"), ATTR_IS_UPLOADED) is False

    def test_percent_uploaded_parses_number(self) -> None:
        with mock.patch("macbackup.services.cloud.run_command", return_value=completed("57.5")):
            assert tools().percent_uploaded(Path("/x")) == 57.5

    def test_percent_uploaded_none_when_missing(self) -> None:
        with mock.patch("macbackup.services.cloud.run_command", return_value=completed("")):
            assert tools().percent_uploaded(Path("/x")) is None

    def test_no_mdls_means_no_query(self) -> None:
        cloud = CloudTools(brctl="/bin/brctl", mdls=None, mdfind="/bin/mdfind")
        cloud.mdls = None
        assert cloud.can_query is False
        assert cloud.attribute(Path("/x"), ATTR_IS_UPLOADED) is None


class TestPendingDownloads:
    """Tests for mdfind placeholder search."""

    def test_parses_one_path_per_line(self) -> None:
        output = "/a/one.pdf\n\n/a/two.pdf\n"
        with mock.patch(
            "macbackup.services.cloud.run_command", return_value=completed(output)
        ) as run:
            assert tools().pending_downloads(Path("/a")) == [
                Path("/a/one.pdf"),
                Path("/a/two.pdf"),
            ]
        assert run.call_args.args[0] == ["/bin/mdfind", "-onlyin", "/a", PENDING_DOWNLOAD_QUERY]

    def test_empty_when_mdfind_errors(self) -> None:
        with mock.patch(
            "macbackup.services.cloud.run_command", side_effect=CommandError("gone")
        ):
            assert tools().pending_downloads(Path("/a")) == []


class TestDaemonRequests:
    """Tests for brctl download/evict."""

    def test_evict_runs_brctl(self) -> None:
        with mock.patch("macbackup.services.cloud.try_command", return_value=True) as run:
            assert tools().evict(Path("/x.tgz")) is True
        assert run.call_args.args[0] == ["/bin/brctl", "evict", "/x.tgz"]

    def test_download_without_brctl_is_noop(self) -> None:
        cloud = tools()
        cloud.brctl = None
        with mock.patch("macbackup.services.cloud.try_command") as run:
            assert cloud.download(Path("/x")) is False
        run.assert_not_called()

    def test_failed_evict_returns_false(self) -> None:
        with mock.patch("macbackup.services.cloud.try_command", return_value=False):
            assert tools().evict(Path("/x")) is False


class TestDiscovery:
    """Tests for executable discovery."""

    def test_missing_tools_are_none(self) -> None:
        with mock.patch("macbackup.services.commands.shutil.which", return_value=None):
            cloud = CloudTools()
        assert cloud.brctl is None
        assert cloud.can_evict is False
        assert cloud.can_search is False

    def test_brctl_fallback_location(self) -> None:
        def which(name: str) -> str | None:
            return name if name.endswith("/Support/brctl") else None

        with mock.patch("macbackup.services.commands.shutil.which", side_effect=which):
            cloud = CloudTools()
        assert cloud.brctl is not None
        assert cloud.brctl.endswith("CloudDocsDaemon.framework/Versions/A/Support/brctl")
