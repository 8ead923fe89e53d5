"""Detached landing page worker.

Invoked as ``python -m tallstack_installer.generation.worker <job.json>``.
The job file holds the generation request plus ``output_path``. The API key,
when needed, arrives through ``ANTHROPIC_API_KEY`` in the environment. All
diagnostics go to stderr, which the coordinator redirects to the job log.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path

from tallstack_installer.exceptions import GenerationError
from tallstack_installer.generation.backends import API_KEY_ENV, get_backend
from tallstack_installer.generation.prompts import GenerationRequest, build_prompt, extract_document, is_complete

logger = logging.getLogger("tallstack_installer.generation.worker")

WORKER_TIMEOUT_SECONDS = 600


def write_atomically(path: Path, content: str) -> None:
    """Write to a sibling temp file and rename, so readers never see a partial file."""
    partial = path.with_name(path.name + ".partial")
    partial.write_text(content, encoding="utf-8")
    os.replace(partial, path)


def run_job(job_path: Path) -> int:
    payload = json.loads(job_path.read_text(encoding="utf-8"))
    output_path = Path(payload["output_path"])
    request = GenerationRequest.from_dict(payload["request"])

    logger.info("Generating landing page for %s via %s (%s)", request.app_name, request.backend, request.model)
    backend = get_backend(request.backend, api_key=os.environ.get(API_KEY_ENV))
    try:
        raw = backend.generate(
            build_prompt(request),
            model=request.model,
            max_tokens=request.max_tokens,
            timeout=WORKER_TIMEOUT_SECONDS,
        )
    except GenerationError as exc:
        logger.error("Generation failed: %s", exc)
        return 1

    document = extract_document(raw)
    if not is_complete(document):
        logger.error("Generated content is incomplete (%d characters)", len(document))
        return 1

    write_atomically(output_path, document)
    logger.info("Wrote %d characters to %s", len(document), output_path)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    logging.basicConfig(
        level=logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    if len(args) != 1:
        logger.error("usage: python -m tallstack_installer.generation.worker <job.json>")
        return 2
    return run_job(Path(args[0]))


if __name__ == "__main__":
    sys.exit(main())
