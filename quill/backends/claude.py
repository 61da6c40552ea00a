"""Claude generation backend — Anthropic Messages API via httpx."""

from __future__ import annotations

import base64
import logging

import httpx

from quill.backends.base import post_json
from quill.config import settings
from quill.errors import MalformedResponse
from quill.models.fragment import AssembledPrompt, PromptFragment

logger = logging.getLogger(__name__)

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_MODEL = "claude-sonnet-4-5"
MAX_TOKENS = 8192


class ClaudeBackend:
    """Generation backend using Anthropic's Claude API."""

    name: str = "Claude"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.anthropic_api_key
        self.model = model
        self.transport = transport

    async def generate(self, prompt: AssembledPrompt) -> str:
        """Run one Messages call and return the joined text blocks."""
        data = await post_json(
            ANTHROPIC_API_URL,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": "2023-06-01",
                "content-type": "application/json",
            },
            payload={
                "model": self.model,
                "max_tokens": MAX_TOKENS,
                "system": prompt.system_instructions,
                "messages": [
                    {"role": "user", "content": self._build_content(prompt.blocks)}
                ],
            },
            provider=self.name,
            transport=self.transport,
        )
        return self._parse_response(data)

    def _build_content(self, blocks: list[PromptFragment]) -> list[dict]:
        content: list[dict] = []
        for block in blocks:
            if block.is_document:
                content.append({
                    "type": "document",
                    "title": block.filename,
                    "source": {
                        "type": "base64",
                        "media_type": block.media_type,
                        "data": base64.b64encode(block.data).decode("ascii"),
                    },
                })
            else:
                content.append({"type": "text", "text": block.text})
        return content

    def _parse_response(self, data: dict) -> str:
        try:
            parts = [b["text"] for b in data["content"] if b.get("type") == "text"]
        except (KeyError, TypeError) as exc:
            raise MalformedResponse(f"Claude response missing content: {exc}") from exc
        if not parts:
            raise MalformedResponse("Claude response contained no text")
        return "".join(parts)
