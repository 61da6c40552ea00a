"""Backend selection by model name."""

from __future__ import annotations

from quill.backends.base import GenerationBackend
from quill.backends.claude import ClaudeBackend
from quill.backends.gemini import GeminiBackend
from quill.backends.openai import OpenAIBackend
from quill.config import settings
from quill.errors import UnknownModel

# Model name prefix -> backend class
_FAMILIES: list[tuple[tuple[str, ...], type]] = [
    (("gpt-", "o1", "o3", "o4"), OpenAIBackend),
    (("gemini-",), GeminiBackend),
    (("claude-",), ClaudeBackend),
]


def get_backend(model: str | None = None) -> GenerationBackend:
    """Build the backend serving ``model`` (blank means the default model)."""
    model = (model or "").strip() or settings.default_model
    for prefixes, backend_cls in _FAMILIES:
        if model.startswith(prefixes):
            return backend_cls(model=model)
    raise UnknownModel(model)
