"""Tests for stub rendering."""

from __future__ import annotations

from pathlib import Path

import pytest

from tallstack_installer.core.home import get_stub_root
from tallstack_installer.exceptions import TemplateError
from tallstack_installer.installer.templates import (
    escape_php_single_quoted,
    load_stub,
    placeholders,
    render_template,
    write_stub,
)


def test_render_replaces_all_placeholders() -> None:
    text = "Hello {{NAME}}, welcome to {{ APP_NAME }}. Bye {{NAME}}."
    assert render_template(text, {"NAME": "Ada", "APP_NAME": "Acme"}) == "Hello Ada, welcome to Acme. Bye Ada."


def test_missing_value_raises() -> None:
    with pytest.raises(TemplateError, match="missing values for APP_NAME"):
        render_template("{{NAME}} {{APP_NAME}}", {"NAME": "Ada"})


def test_unused_value_raises() -> None:
    with pytest.raises(TemplateError, match="unused values EXTRA"):
        render_template("{{NAME}}", {"NAME": "Ada", "EXTRA": 1})


def test_php_and_blade_syntax_is_left_alone() -> None:
    text = "{{ $user->name }} {!! $html !!} {{APP_NAME}}"
    assert placeholders(text) == {"APP_NAME"}
    assert render_template(text, {"APP_NAME": "Acme"}) == "{{ $user->name }} {!! $html !!} Acme"


def test_bundled_stubs_exist() -> None:
    root = get_stub_root()
    for name in [
        "legal/page.blade.stub",
        "landing/welcome.blade.stub",
        "spatie/permission-teams.php.stub",
        "SuperAdminSeeder.php.stub",
        "CLAUDE.md.stub",
    ]:
        assert (root / name).is_file(), name


def test_stub_root_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "greeting.stub").write_text("Hi {{NAME}}\n", encoding="utf-8")
    monkeypatch.setenv("TALLSTACK_STUB_ROOT", str(tmp_path))

    destination = write_stub("greeting.stub", tmp_path / "out" / "greeting.txt", {"NAME": "Ada"})

    assert destination.read_text(encoding="utf-8") == "Hi Ada\n"


def test_missing_stub(tmp_path: Path) -> None:
    with pytest.raises(TemplateError):
        load_stub("nope.stub", tmp_path)


@pytest.mark.parametrize(
    ("raw", "escaped"),
    [
        ("Ada", "Ada"),
        ("O'Brien", "O\\'Brien"),
        ("Ops Team\\", "Ops Team\\\\"),
        ("a\\'b", "a\\\\\\'b"),
    ],
)
def test_escape_php_single_quoted(raw: str, escaped: str) -> None:
    assert escape_php_single_quoted(raw) == escaped
