"""Packaging staged backups into tar/zip archives."""

import fnmatch
import logging
import shutil
import subprocess
import tarfile
import zipfile
from collections.abc import Callable, Sequence
from pathlib import Path

logger = logging.getLogger(__name__)

DITTO = "/usr/bin/ditto"


class ArchiveError(Exception):
    """Error creating or reading an archive."""


def _exclude_filter(
    patterns: Sequence[str],
) -> Callable[[tarfile.TarInfo], tarfile.TarInfo | None]:
    def keep(info: tarfile.TarInfo) -> tarfile.TarInfo | None:
        for pattern in patterns:
            if fnmatch.fnmatchcase(info.name, pattern):
                return None
        return info

    return keep


def create_tar(base: Path, name: str, output: Path, excludes: Sequence[str] = ()) -> Path:
    """Create a gzip tarball of `base/name` with `name` as the top entry.

    Args:
        base: Directory containing the item (like `tar -C base`)
        name: Relative path of the item to archive
        output: Archive path to write
        excludes: fnmatch patterns matched against archive member names

    Raises:
        ArchiveError: If the archive cannot be written
    """
    output.parent.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(output, "w:gz") as tar:
            tar.add(base / name, arcname=name, filter=_exclude_filter(excludes))
    except (OSError, tarfile.TarError) as e:
        output.unlink(missing_ok=True)
        raise ArchiveError(f"Failed to archive {base / name}: {e}") from e
    return output


def create_zip(source: Path, output: Path) -> Path:
    """Create a zip of `source` keeping its folder name as the top entry.

    Uses ditto when present to preserve macOS metadata.

    Raises:
        ArchiveError: If the archive cannot be written
    """
    output.parent.mkdir(parents=True, exist_ok=True)
    ditto = shutil.which("ditto") or (DITTO if Path(DITTO).exists() else None)
    if ditto is not None:
        logger.debug("Zipping %s with %s", source, ditto)
        result = subprocess.run(
            [ditto, "-c", "-k", "--sequesterRsrc", "--keepParent", str(source), str(output)],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise ArchiveError(f"ditto failed: {result.stderr.strip()[:200]}")
        return output

    logger.debug("ditto not found; zipping %s with zipfile", source)
    try:
        with zipfile.ZipFile(output, "w", zipfile.ZIP_DEFLATED) as zf:
            zf.write(source, source.name)
            for path in sorted(source.rglob("*")):
                zf.write(path, f"{source.name}/{path.relative_to(source).as_posix()}")
    except OSError as e:
        output.unlink(missing_ok=True)
        raise ArchiveError(f"Failed to zip {source}: {e}") from e
    return output


def list_members(archive: Path) -> list[str]:
    """Member names of a .tgz/.tar.gz or .zip archive, without trailing slashes.

    Raises:
        ArchiveError: If the archive type is unsupported or unreadable
    """
    name = archive.name
    try:
        if name.endswith((".tgz", ".tar.gz")):
            with tarfile.open(archive, "r:*") as tar:
                return [m.name.rstrip("/") for m in tar.getmembers()]
        if name.endswith(".zip"):
            with zipfile.ZipFile(archive) as zf:
                return [n.rstrip("/") for n in zf.namelist()]
    except (OSError, tarfile.TarError, zipfile.BadZipFile) as e:
        raise ArchiveError(f"Cannot read {archive}: {e}") from e
    raise ArchiveError(f"Unsupported archive type: {archive}")
