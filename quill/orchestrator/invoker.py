"""Generation invoker — one assembled prompt, one backend call."""

from __future__ import annotations

import logging

from quill.backends.base import GenerationBackend
from quill.errors import MalformedResponse
from quill.models.fragment import AssembledPrompt

logger = logging.getLogger(__name__)


class GenerationInvoker:
    """Issues a prompt to a backend. No retry; failures propagate typed."""

    def __init__(self, backend: GenerationBackend) -> None:
        self.backend = backend

    async def invoke(self, prompt: AssembledPrompt) -> str:
        logger.info(
            "Invoking %s (%d blocks, %d attachments)",
            self.backend.name, len(prompt.blocks), len(prompt.attachments),
        )
        output = await self.backend.generate(prompt)
        if not isinstance(output, str):
            raise MalformedResponse(f"{self.backend.name} returned no text")
        logger.info("%s returned %d chars", self.backend.name, len(output))
        return output
