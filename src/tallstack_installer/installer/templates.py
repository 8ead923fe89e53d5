"""Stub rendering with validated ``{{NAME}}`` substitutions."""

from __future__ import annotations

import re
from pathlib import Path

from tallstack_installer.core.home import get_stub_root
from tallstack_installer.exceptions import TemplateError

PLACEHOLDER = re.compile(r"\{\{\s*([A-Z][A-Z0-9_]*)\s*\}\}")


def placeholders(text: str) -> set[str]:
    return set(PLACEHOLDER.findall(text))


def render_template(text: str, substitutions: dict[str, object]) -> str:
    """Replace every ``{{NAME}}`` in ``text``.

    The template and the substitutions must match exactly: a placeholder
    without a value, or a value no placeholder uses, raises
    :class:`TemplateError` before anything is rendered.
    """
    found = placeholders(text)
    missing = found - set(substitutions)
    unused = set(substitutions) - found
    if missing or unused:
        details = []
        if missing:
            details.append(f"missing values for {', '.join(sorted(missing))}")
        if unused:
            details.append(f"unused values {', '.join(sorted(unused))}")
        raise TemplateError("Template substitution mismatch: " + "; ".join(details))
    return PLACEHOLDER.sub(lambda match: str(substitutions[match.group(1)]), text)


def escape_php_single_quoted(value: object) -> str:
    """Escape ``value`` for use between single quotes in a PHP stub."""
    return str(value).replace("\\", "\\\\").replace("'", "\\'")


def load_stub(name: str, stub_root: Path | None = None) -> str:
    path = (stub_root or get_stub_root()) / name
    if not path.is_file():
        raise TemplateError(f"Stub not found: {name}")
    return path.read_text(encoding="utf-8")


def write_stub(
    name: str,
    destination: Path,
    substitutions: dict[str, object] | None = None,
    stub_root: Path | None = None,
) -> Path:
    """Render stub ``name`` and write it to ``destination``."""
    text = load_stub(name, stub_root)
    rendered = render_template(text, substitutions or {})
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(rendered, encoding="utf-8")
    return destination


__all__ = [
    "PLACEHOLDER",
    "placeholders",
    "render_template",
    "escape_php_single_quoted",
    "load_stub",
    "write_stub",
]
