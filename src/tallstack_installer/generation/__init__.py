"""AI landing page generation: backends, detached worker and coordinator."""

from .backends import AnthropicApiBackend, BaseBackend, ClaudeCliBackend, get_backend, select_backend
from .coordinator import BackgroundJob, GenerationCoordinator, JobState
from .prompts import GenerationRequest, build_prompt, extract_document, is_complete

__all__ = [
    "AnthropicApiBackend",
    "BaseBackend",
    "ClaudeCliBackend",
    "get_backend",
    "select_backend",
    "BackgroundJob",
    "GenerationCoordinator",
    "JobState",
    "GenerationRequest",
    "build_prompt",
    "extract_document",
    "is_complete",
]
