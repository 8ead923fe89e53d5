"""Target project directory preparation and conflict resolution."""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from enum import Enum
from pathlib import Path

from tallstack_installer.exceptions import DirectoryConflictError, InstallationAborted

logger = logging.getLogger(__name__)


class ConflictResolution(str, Enum):
    BACKUP = "backup"
    DELETE = "delete"
    ABORT = "abort"


RESOLUTION_CHOICES = {
    "1": ConflictResolution.BACKUP,
    "2": ConflictResolution.DELETE,
    "3": ConflictResolution.ABORT,
}


def backup_path_for(path: Path, now: datetime | None = None) -> Path:
    stamp = (now or datetime.now()).strftime("%Y%m%d-%H%M%S")
    candidate = path.with_name(f"{path.name}.backup-{stamp}")
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.name}.backup-{stamp}-{counter}")
        counter += 1
    return candidate


def prepare_project_directory(path: Path, resolution: ConflictResolution | str | None = None) -> str:
    """Create an empty target directory.

    An existing ``path`` is only touched when a resolution was chosen:
    ``backup`` renames it aside, ``delete`` removes it. Without a resolution
    :class:`DirectoryConflictError` is raised and the directory is left as is.
    Returns a short description of what happened.
    """
    path = Path(path)
    if not path.exists():
        path.mkdir(parents=True)
        return f"created {path}"

    if resolution is None:
        raise DirectoryConflictError(path)

    resolution = ConflictResolution(resolution)
    if resolution is ConflictResolution.ABORT:
        raise InstallationAborted(f"Installation aborted: '{path}' already exists")

    if resolution is ConflictResolution.BACKUP:
        target = backup_path_for(path)
        path.rename(target)
        logger.info("Moved existing %s to %s", path, target)
        path.mkdir()
        return f"previous directory backed up to {target.name}"

    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
    logger.info("Deleted existing %s", path)
    path.mkdir()
    return "previous directory deleted"


__all__ = [
    "ConflictResolution",
    "RESOLUTION_CHOICES",
    "backup_path_for",
    "prepare_project_directory",
]
