"""CLI command implementations for macbackup.

This package contains the implementation of each CLI command,
separated from the CLI framework setup in cli.py.
"""

from .agent import agent_app
from .backup import backup
from .daily import daily
from .init import init
from .prune import prune
from .status import status
from .verify import verify

__all__ = [
    "agent_app",
    "backup",
    "daily",
    "init",
    "prune",
    "status",
    "verify",
]
