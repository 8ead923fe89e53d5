"""Read-modify-write helpers for the generated project's ``.env`` file."""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

_NEEDS_QUOTES = re.compile(r"[\s#\"'$`\\]")


def format_env_value(value: object) -> str:
    """Render a Python value the way Laravel's dotenv loader reads it back."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    if text == "" or not _NEEDS_QUOTES.search(text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _unquote(raw: str) -> str:
    raw = raw.strip()
    if len(raw) >= 2 and raw[0] == raw[-1] == '"':
        return raw[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    if len(raw) >= 2 and raw[0] == raw[-1] == "'":
        return raw[1:-1]
    if " #" in raw:
        raw = raw.split(" #", 1)[0].rstrip()
    return raw


def update_env_file(path: Path, values: dict[str, object]) -> None:
    """Set each ``KEY`` in ``values`` inside ``path``.

    An existing ``KEY=...`` line is replaced in place, otherwise ``KEY=VALUE``
    is appended. Lines for other keys are written back byte-for-byte. The
    file is replaced atomically.
    """
    path = Path(path)
    original = path.read_bytes().decode("utf-8") if path.exists() else ""
    content = original
    newline = "\r\n" if "\r\n" in original else "\n"

    for key, value in values.items():
        line = f"{key}={format_env_value(value)}"
        pattern = re.compile(rf"^{re.escape(key)}=[^\r\n]*", re.MULTILINE)
        if pattern.search(content):
            content = pattern.sub(lambda _match: line, content)
        else:
            if content and not content.endswith("\n"):
                content += newline
            content += line + newline

    if content == original:
        return

    fd, tmp_name = tempfile.mkstemp(prefix=".env.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content.encode("utf-8"))
        if path.exists():
            os.chmod(tmp_name, path.stat().st_mode & 0o777)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines, ignoring blanks and comments."""
    values: dict[str, str] = {}
    path = Path(path)
    if not path.exists():
        return values
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, raw = stripped.split("=", 1)
        if key.startswith("export "):
            key = key[len("export "):]
        values[key.strip()] = _unquote(raw)
    return values


__all__ = ["update_env_file", "parse_env_file", "format_env_value"]
