from __future__ import annotations

import os
from pathlib import Path

import pytest

from tallstack_installer.core.secrets import SecretStore
from tallstack_installer.exceptions import SecretStoreError


def test_default_path_lives_in_installer_home(installer_home: Path) -> None:
    assert SecretStore().path == installer_home / "secrets.toml"


def test_set_merges_values(tmp_path: Path) -> None:
    store = SecretStore(tmp_path / "secrets.toml")
    store.set("anthropic_api_key", "sk-ant-abc")
    store.set_many({"mailgun_secret": "key-1", "forge_token": "tok"})

    assert store.load() == {
        "anthropic_api_key": "sk-ant-abc",
        "mailgun_secret": "key-1",
        "forge_token": "tok",
    }
    assert store.get("missing") is None


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_file_is_owner_only(tmp_path: Path) -> None:
    store = SecretStore(tmp_path / "nested" / "secrets.toml")
    store.set("forge_token", "tok")
    assert store.path.stat().st_mode & 0o777 == 0o600


def test_corrupt_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "secrets.toml"
    path.write_text('key = "unterminated\n', encoding="utf-8")

    with pytest.raises(SecretStoreError):
        SecretStore(path).load()


def test_clear_removes_file(tmp_path: Path) -> None:
    store = SecretStore(tmp_path / "secrets.toml")
    store.set("forge_token", "tok")
    assert store.exists()
    store.clear()
    assert not store.exists()
    assert store.load() == {}
