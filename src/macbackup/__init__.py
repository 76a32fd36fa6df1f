"""macbackup: macOS backup staging, archiving and iCloud offload."""

__version__ = "0.1.0"
