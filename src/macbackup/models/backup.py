"""Backup run and daily scheduler result models."""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from .cloud import CloudOutcome


class BackupFormat(str, Enum):
    """Final packaging of a staged backup."""

    DIR = "dir"
    TAR = "tar"
    ZIP = "zip"


class BackupResult(BaseModel):
    """Outcome of one backup pipeline run.

    Attributes:
        stamp: Timestamp suffix of the staging entry.
        staged_dir: Staging entry path (may no longer exist after --clean).
        output_path: Final folder or archive in the backup root.
        format: Packaging format used.
        cleaned: Whether the staged folder was removed after archiving.
        cloud: Result of the upload/evict wait, when one was attempted.
        staged_bytes: Size of the staged folder before packaging.
        final_bytes: Size of the final artifact.
    """

    stamp: str
    staged_dir: Path
    output_path: Path
    format: BackupFormat
    cleaned: bool = False
    cloud: CloudOutcome | None = None
    staged_bytes: int = 0
    final_bytes: int = 0
    finished_at: datetime = Field(default_factory=datetime.now)


class DailyResult(BaseModel):
    """Outcome of a scheduled daily run."""

    skipped: bool = False
    reason: str | None = None
    backup: BackupResult | None = None
    removed: list[Path] = Field(default_factory=list)
