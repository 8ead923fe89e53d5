"""Background landing page generation.

The wizard starts one detached worker process as soon as it knows enough to
write the landing page, keeps asking questions, and collects the result near
the end of installation. The filesystem is the only channel between the two
processes: the worker renames a finished document onto the output path, and
the coordinator polls for it.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
import tempfile
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from tallstack_installer.exceptions import GenerationError
from tallstack_installer.generation.backends import API_KEY_ENV, BaseBackend, get_backend
from tallstack_installer.generation.prompts import GenerationRequest, build_prompt, extract_document, is_complete

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    CONSUMED = "consumed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class BackgroundJob:
    params_path: Path
    output_path: Path
    log_path: Path
    process: subprocess.Popen | None = None
    state: JobState = JobState.NOT_STARTED
    started_at: float = 0.0
    diagnostics: str = ""
    content: str | None = field(default=None, repr=False)

    @property
    def finished(self) -> bool:
        return self.state in (JobState.CONSUMED, JobState.TIMED_OUT, JobState.FAILED)

    def temp_files(self) -> list[Path]:
        partial = self.output_path.with_name(self.output_path.name + ".partial")
        return [self.params_path, self.output_path, partial, self.log_path]


def _spawn_detached(argv: list[str], log_path: Path, env: dict[str, str]) -> subprocess.Popen:
    with open(log_path, "ab") as log_handle:
        kwargs: dict = {
            "stdin": subprocess.DEVNULL,
            "stdout": log_handle,
            "stderr": subprocess.STDOUT,
            "env": env,
            "close_fds": True,
        }
        if os.name == "nt":
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP | subprocess.DETACHED_PROCESS
        else:
            kwargs["start_new_session"] = True
        return subprocess.Popen(argv, **kwargs)


class GenerationCoordinator:
    """Owns at most one background generation job and its temp files."""

    def __init__(
        self,
        api_key: str | None = None,
        work_dir: Path | None = None,
        spawn: Callable[[list[str], Path, dict[str, str]], subprocess.Popen] = _spawn_detached,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.api_key = api_key
        self.work_dir = Path(work_dir or tempfile.gettempdir())
        self._spawn = spawn
        self._sleep = sleep
        self._clock = clock
        self.job: BackgroundJob | None = None

    def start(self, request: GenerationRequest) -> BackgroundJob:
        """Launch the worker and return immediately."""
        if self.job is not None:
            raise GenerationError("A landing page generation job has already been started")

        token = uuid.uuid4().hex[:12]
        fd, params_name = tempfile.mkstemp(prefix=f"tallstack-landing-{token}-", suffix=".json", dir=self.work_dir)
        job = BackgroundJob(
            params_path=Path(params_name),
            output_path=self.work_dir / f"tallstack-landing-{token}.html",
            log_path=self.work_dir / f"tallstack-landing-{token}.log",
        )
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump({"request": request.to_dict(), "output_path": str(job.output_path)}, handle)

        env = os.environ.copy()
        if self.api_key:
            env[API_KEY_ENV] = self.api_key
        argv = [sys.executable, "-m", "tallstack_installer.generation.worker", str(job.params_path)]

        self.job = job
        try:
            job.process = self._spawn(argv, job.log_path, env)
        except OSError as exc:
            job.state = JobState.FAILED
            job.diagnostics = f"Could not start worker: {exc}"
            self.cleanup()
            raise GenerationError(f"Could not start background generation: {exc}") from exc
        job.state = JobState.RUNNING
        job.started_at = self._clock()
        logger.debug("Started landing page worker pid=%s", getattr(job.process, "pid", None))
        return job

    def _read_complete_output(self, job: BackgroundJob) -> str | None:
        if not job.output_path.exists():
            return None
        content = job.output_path.read_text(encoding="utf-8", errors="replace")
        if content.strip() and is_complete(content):
            return content
        return None

    def await_result(self, timeout: float = 90.0, poll_interval: float = 2.0) -> str | None:
        """Wait for a complete document; ``None`` on timeout or worker failure.

        Returns within ``timeout`` plus one ``poll_interval``. Temp files are
        removed on every path; the worker log survives in ``job.diagnostics``.
        """
        job = self.job
        if job is None or job.finished:
            return None
        if job.state is JobState.COMPLETED:
            return self._consume(job)

        deadline = self._clock() + timeout
        while True:
            content = self._read_complete_output(job)
            if content is not None:
                job.content = content
                job.state = JobState.COMPLETED
                return self._consume(job)

            exited = job.process is not None and job.process.poll() is not None
            if exited:
                # the worker renames before exiting, so one last read settles it
                content = self._read_complete_output(job)
                if content is not None:
                    job.content = content
                    job.state = JobState.COMPLETED
                    return self._consume(job)
                job.state = JobState.FAILED
                logger.warning("Landing page worker exited without a complete document")
                self.cleanup()
                return None

            remaining = deadline - self._clock()
            if remaining <= 0:
                job.state = JobState.TIMED_OUT
                logger.warning("Landing page generation timed out after %.0fs", timeout)
                self.cleanup()
                return None
            self._sleep(min(poll_interval, remaining))

    def _consume(self, job: BackgroundJob) -> str | None:
        content = job.content
        job.state = JobState.CONSUMED
        self.cleanup()
        return content

    def cleanup(self) -> None:
        """Capture the worker log, stop a still-running worker, delete temp files."""
        job = self.job
        if job is None:
            return
        if job.process is not None and job.process.poll() is None:
            job.process.terminate()
        if job.log_path.exists():
            job.diagnostics = job.log_path.read_text(encoding="utf-8", errors="replace")
        for path in job.temp_files():
            path.unlink(missing_ok=True)

    def generate_now(
        self,
        request: GenerationRequest,
        backend: BaseBackend | None = None,
        timeout: float = 300.0,
    ) -> str | None:
        """Blocking generation used when the background result is missing."""
        try:
            backend = backend or get_backend(request.backend, api_key=self.api_key)
            raw = backend.generate(
                build_prompt(request),
                model=request.model,
                max_tokens=request.max_tokens,
                timeout=timeout,
            )
        except GenerationError as exc:
            logger.warning("Synchronous landing page generation failed: %s", exc)
            return None
        except Exception as exc:
            logger.warning("Synchronous landing page generation crashed: %s", exc, exc_info=True)
            return None
        document = extract_document(raw)
        return document if is_complete(document) else None


__all__ = ["BackgroundJob", "GenerationCoordinator", "JobState"]
