"""Tests for LaunchAgent management."""

import plistlib
from pathlib import Path
from unittest import mock

import pytest

from macbackup.config import ScheduleConfig
from macbackup.services.commands import CommandError
from macbackup.services.launchd import (
    LaunchAgentError,
    agent_path,
    build_agent_plist,
    install_agent,
    remove_agent,
)


class TestBuildAgentPlist:
    """Tests for the plist definition."""

    def test_schedule_and_label(self) -> None:
        plist = build_agent_plist(ScheduleConfig(hour=4, minute=30))
        assert plist["Label"] == "com.osxbackup.daily"
        assert plist["StartCalendarInterval"] == {"Hour": 4, "Minute": 30}
        assert plist["RunAtLoad"] is False

    def test_program_runs_daily_with_config(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.toml"
        plist = build_agent_plist(ScheduleConfig(), config_path=config_path)
        args = plist["ProgramArguments"]
        assert isinstance(args, list)
        assert args[-1] == "daily"
        assert args[-3:-1] == ["--config", str(config_path)]

    def test_serializable(self) -> None:
        assert plistlib.dumps(build_agent_plist(ScheduleConfig()))


class TestInstallAgent:
    """Tests for install_agent."""

    def test_writes_plist_and_bootstraps(self, tmp_path: Path) -> None:
        with mock.patch("macbackup.services.launchd.try_command") as try_cmd, mock.patch(
            "macbackup.services.launchd.run_command"
        ) as run:
            path = install_agent(ScheduleConfig(), home=tmp_path)

        assert path == agent_path("com.osxbackup.daily", tmp_path)
        with open(path, "rb") as f:
            assert plistlib.load(f)["Label"] == "com.osxbackup.daily"
        assert try_cmd.call_args.args[0][1] == "bootout"
        commands = [call.args[0][1] for call in run.call_args_list]
        assert commands == ["bootstrap", "kickstart"]

    def test_bootstrap_failure(self, tmp_path: Path) -> None:
        with mock.patch("macbackup.services.launchd.try_command"), mock.patch(
            "macbackup.services.launchd.run_command", side_effect=CommandError("denied")
        ):
            with pytest.raises(LaunchAgentError, match="denied"):
                install_agent(ScheduleConfig(), home=tmp_path)


class TestRemoveAgent:
    """Tests for remove_agent."""

    def test_removes_existing(self, tmp_path: Path) -> None:
        schedule = ScheduleConfig(label="com.example.backup")
        path = agent_path(schedule.label, tmp_path)
        path.parent.mkdir(parents=True)
        with open(path, "wb") as f:
            plistlib.dump({"Label": schedule.label}, f)

        with mock.patch("macbackup.services.launchd.try_command") as try_cmd:
            assert remove_agent(schedule, home=tmp_path) is True
        assert not path.exists()
        assert try_cmd.call_count == 2

    def test_absent_plist(self, tmp_path: Path) -> None:
        with mock.patch("macbackup.services.launchd.try_command"):
            assert remove_agent(ScheduleConfig(), home=tmp_path) is False
