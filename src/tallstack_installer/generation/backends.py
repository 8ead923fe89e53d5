"""Text-generation backends for the landing page.

Two backends exist: the locally installed ``claude`` CLI and the hosted
Anthropic Messages API. Both take a prompt and return raw model text.
"""

from __future__ import annotations

import logging
import os
import ssl
import tempfile
from pathlib import Path

import httpx
import truststore

from tallstack_installer.core.commands import CLAUDE_LOCAL_PATH, CommandRunner, command_exists
from tallstack_installer.exceptions import GenerationError

logger = logging.getLogger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
API_KEY_ENV = "ANTHROPIC_API_KEY"


class BaseBackend:
    """Common interface for generation backends."""

    backend_id: str = ""

    def is_available(self) -> bool:
        raise NotImplementedError

    def generate(self, prompt: str, *, model: str, max_tokens: int, timeout: float) -> str:
        raise NotImplementedError


class ClaudeCliBackend(BaseBackend):
    """Runs ``claude -p`` with the prompt piped in from a temp file."""

    backend_id = "cli"

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()

    def is_available(self) -> bool:
        return command_exists("claude")

    def executable(self) -> str:
        if CLAUDE_LOCAL_PATH.is_file():
            return str(CLAUDE_LOCAL_PATH)
        return "claude"

    def build_command(self, model: str) -> list[str]:
        return [self.executable(), "-p", "--output-format", "text", "--model", model]

    def generate(self, prompt: str, *, model: str, max_tokens: int, timeout: float) -> str:
        fd, prompt_name = tempfile.mkstemp(prefix="tallstack-prompt-", suffix=".txt")
        prompt_path = Path(prompt_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(prompt)
            result = self.runner.execute(
                self.build_command(model),
                stdin_path=prompt_path,
                timeout=int(timeout),
            )
        finally:
            prompt_path.unlink(missing_ok=True)

        if not result.ok:
            raise GenerationError(f"claude CLI exited with {result.returncode}: {result.stderr.strip()}")
        if not result.stdout.strip():
            raise GenerationError("claude CLI returned no output")
        return result.stdout


class AnthropicApiBackend(BaseBackend):
    """Calls the Messages API directly over HTTPS."""

    backend_id = "api"

    def __init__(self, api_key: str | None = None, client: httpx.Client | None = None):
        self.api_key = api_key if api_key is not None else os.environ.get(API_KEY_ENV, "")
        self._client = client

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _http_client(self, timeout: float) -> httpx.Client:
        if self._client is not None:
            return self._client
        ssl_context = truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        return httpx.Client(verify=ssl_context, timeout=timeout)

    def generate(self, prompt: str, *, model: str, max_tokens: int, timeout: float) -> str:
        if not self.api_key:
            raise GenerationError("No Anthropic API key configured")

        client = self._http_client(timeout)
        try:
            response = client.post(
                ANTHROPIC_API_URL,
                headers={
                    "x-api-key": self.api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                    "content-type": "application/json",
                },
                json={
                    "model": model,
                    "max_tokens": max_tokens,
                    "messages": [{"role": "user", "content": prompt}],
                },
            )
        except httpx.HTTPError as exc:
            raise GenerationError(f"Anthropic API request failed: {exc}") from exc
        finally:
            if self._client is None:
                client.close()

        if response.status_code != 200:
            raise GenerationError(f"Anthropic API returned {response.status_code}: {response.text[:500]}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise GenerationError(f"Anthropic API returned invalid JSON: {response.text[:200]}") from exc
        blocks = payload.get("content") if isinstance(payload, dict) else None
        if not isinstance(blocks, list):
            raise GenerationError("Anthropic API response has no content blocks")
        parts = [
            str(block.get("text", ""))
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        ]
        text = "".join(parts)
        if not text.strip():
            raise GenerationError("Anthropic API returned an empty response")
        return text


BACKEND_REGISTRY: dict[str, type[BaseBackend]] = {
    "cli": ClaudeCliBackend,
    "api": AnthropicApiBackend,
}


def get_backend(backend_id: str, api_key: str | None = None) -> BaseBackend:
    if backend_id == "api":
        return AnthropicApiBackend(api_key=api_key)
    if backend_id == "cli":
        return ClaudeCliBackend()
    valid = ", ".join(sorted(BACKEND_REGISTRY))
    raise ValueError(f"Unknown generation backend: {backend_id}. Valid backends: {valid}")


def select_backend(cli_installed: bool, api_key: str | None) -> str | None:
    """Prefer the local CLI, then the API key; ``None`` means no AI available."""
    if cli_installed:
        return "cli"
    if api_key:
        return "api"
    return None


__all__ = [
    "BaseBackend",
    "ClaudeCliBackend",
    "AnthropicApiBackend",
    "BACKEND_REGISTRY",
    "get_backend",
    "select_backend",
    "API_KEY_ENV",
]
