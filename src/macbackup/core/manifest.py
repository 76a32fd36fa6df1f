"""Expected contents of a backup, derived from configuration."""

from collections.abc import Callable, Iterable
from pathlib import Path

from ..config import MacBackupConfig
from ..constants import SUMMARY_FILE_NAME
from ..models import EntryCheck, ManifestEntry

FILES_DIR = "files"
LISTS_DIR = "lists"
ARCHIVES_DIR = "archives"
HOME_DIR = "User_Folder"


def archive_name(folder: str) -> str:
    return f"{folder}.tar.gz"


def build_manifest(
    config: MacBackupConfig,
    missing_tools: Iterable[str] = (),
) -> list[ManifestEntry]:
    """List what a backup made with `config` should contain.

    Args:
        config: Backup configuration
        missing_tools: Inventory command names whose binary was absent; their
            outputs become optional

    Returns:
        Manifest entries in report order
    """
    absent = set(missing_tools)
    entries = [ManifestEntry(path=SUMMARY_FILE_NAME, description="Backup summary")]

    for inv in config.inventory:
        entries.append(
            ManifestEntry(
                path=inv.output,
                description=inv.description or inv.name,
                optional=inv.optional or inv.name in absent,
            )
        )

    seen: set[str] = set()
    for item in config.copies:
        rel = f"{FILES_DIR}/{item.dest.rstrip('/')}"
        if rel in seen:
            continue
        seen.add(rel)
        entries.append(
            ManifestEntry(path=rel, description=item.description or rel, optional=item.optional)
        )

    if config.home.enabled:
        entries.append(
            ManifestEntry(path=HOME_DIR, description="Home folder rsync copy", optional=False)
        )

    if config.archives.enabled:
        for folder in config.archives.folders:
            entries.append(
                ManifestEntry(
                    path=f"{ARCHIVES_DIR}/{archive_name(folder)}",
                    description=f"{folder} archive",
                )
            )
    return entries


def check_manifest(
    entries: Iterable[ManifestEntry], has_item: Callable[[str], bool]
) -> list[EntryCheck]:
    """Look up each entry with `has_item` (called with the relative path)."""
    return [EntryCheck(entry=e, present=has_item(e.path)) for e in entries]


def check_directory(entries: Iterable[ManifestEntry], root: Path) -> list[EntryCheck]:
    return check_manifest(entries, lambda rel: (root / rel).exists())


def format_check(check: EntryCheck) -> str:
    """Render one check as a summary line."""
    entry = check.entry
    if check.status == "present":
        return f"✅ {entry.description} → {entry.path}"
    if check.status == "optional":
        return f"ℹ️  {entry.description} missing (optional) → {entry.path}"
    return f"⚠️  {entry.description} missing → {entry.path}"
