"""External tool integrations for macbackup.

This package wraps the external programs the backup relies on:
- commands: subprocess helpers and executable discovery
- cloud: iCloud Drive metadata (mdls/mdfind) and brctl requests
- filesystem: rsync copies, sizes and forced removal
- notify: desktop notifications via osascript
- launchd: LaunchAgent install/remove for the daily job
"""

from .cloud import CloudTools
from .commands import CommandError, find_executable, run_command, try_command
from .filesystem import expand_source, force_remove, human_size, path_size, rsync, stream_to_file
from .launchd import LaunchAgentError, build_agent_plist, install_agent, remove_agent
from .notify import notify

__all__ = [
    "CloudTools",
    "CommandError",
    "LaunchAgentError",
    "build_agent_plist",
    "expand_source",
    "find_executable",
    "force_remove",
    "human_size",
    "install_agent",
    "notify",
    "path_size",
    "remove_agent",
    "rsync",
    "run_command",
    "stream_to_file",
    "try_command",
]
