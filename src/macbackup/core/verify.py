"""Verification of finished backups against the manifest."""

from collections.abc import Iterable
from pathlib import Path

from ..models import ManifestEntry, VerifyReport
from .archive import ArchiveError, list_members
from .manifest import check_directory, check_manifest


class VerifyError(Exception):
    """Backup target cannot be inspected."""


def verify_backup(target: Path, manifest: Iterable[ManifestEntry]) -> VerifyReport:
    """Check a backup folder, .tgz/.tar.gz or .zip for manifest entries.

    For archives the backup root is the first path component of the first
    member.

    Raises:
        VerifyError: If the target is missing, unsupported or empty
    """
    if target.is_dir():
        return VerifyReport(
            target=target,
            mode="dir",
            root=target.name,
            checks=check_directory(manifest, target),
        )
    if not target.is_file():
        raise VerifyError(f"Target not found: {target}")

    mode = "zip" if target.name.endswith(".zip") else "tar"
    try:
        members = list_members(target)
    except ArchiveError as e:
        raise VerifyError(str(e)) from e

    # ditto puts resource forks under __MACOSX
    tops = [m.split("/", 1)[0] for m in members if not m.startswith("__MACOSX")]
    root = tops[0] if tops else ""
    if not root:
        raise VerifyError("Could not determine backup root inside archive.")

    names = set(members)
    checks = check_manifest(manifest, lambda rel: f"{root}/{rel}" in names)
    return VerifyReport(target=target, mode=mode, root=root, checks=checks)
