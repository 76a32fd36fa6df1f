"""Backup manifest and verification report models."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class ManifestEntry(BaseModel):
    """An item expected inside a backup, relative to its root folder."""

    path: str = Field(description="Path relative to the backup root")
    description: str
    optional: bool = True


class EntryCheck(BaseModel):
    """Result of looking for one manifest entry."""

    entry: ManifestEntry
    present: bool

    @property
    def status(self) -> str:
        """One of 'present', 'missing' or 'optional'."""
        if self.present:
            return "present"
        return "optional" if self.entry.optional else "missing"


class VerifyReport(BaseModel):
    """Verification result for a backup directory or archive."""

    target: Path
    mode: Literal["dir", "tar", "zip"]
    root: str
    checks: list[EntryCheck] = Field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for c in self.checks if c.present)

    @property
    def missing_required(self) -> int:
        return sum(1 for c in self.checks if c.status == "missing")

    @property
    def ok(self) -> bool:
        return self.missing_required == 0
