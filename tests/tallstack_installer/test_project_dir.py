from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from tallstack_installer.exceptions import DirectoryConflictError, InstallationAborted
from tallstack_installer.installer.project_dir import (
    ConflictResolution,
    backup_path_for,
    prepare_project_directory,
)


@pytest.fixture()
def existing(tmp_path: Path) -> Path:
    path = tmp_path / "my-saas-app"
    path.mkdir()
    (path / "composer.json").write_text("{}", encoding="utf-8")
    return path


def test_creates_missing_directory(tmp_path: Path) -> None:
    target = tmp_path / "new-app"
    assert prepare_project_directory(target).startswith("created")
    assert target.is_dir()


def test_conflict_without_resolution_leaves_directory_untouched(existing: Path) -> None:
    with pytest.raises(DirectoryConflictError) as excinfo:
        prepare_project_directory(existing)

    assert excinfo.value.exit_code == 1
    assert excinfo.value.actions
    assert (existing / "composer.json").read_text(encoding="utf-8") == "{}"


def test_abort_resolution(existing: Path) -> None:
    with pytest.raises(InstallationAborted):
        prepare_project_directory(existing, ConflictResolution.ABORT)
    assert (existing / "composer.json").exists()


def test_backup_moves_existing_aside(existing: Path) -> None:
    detail = prepare_project_directory(existing, "backup")

    backups = [p for p in existing.parent.iterdir() if p.name.startswith("my-saas-app.backup-")]
    assert len(backups) == 1
    assert (backups[0] / "composer.json").exists()
    assert existing.is_dir() and not any(existing.iterdir())
    assert backups[0].name in detail


def test_delete_removes_contents(existing: Path) -> None:
    prepare_project_directory(existing, ConflictResolution.DELETE)
    assert existing.is_dir()
    assert not any(existing.iterdir())


def test_backup_name_is_unique(tmp_path: Path) -> None:
    now = datetime(2026, 1, 2, 3, 4, 5)
    path = tmp_path / "app"
    first = backup_path_for(path, now)
    assert first.name == "app.backup-20260102-030405"
    first.mkdir()
    assert backup_path_for(path, now).name == "app.backup-20260102-030405-1"
