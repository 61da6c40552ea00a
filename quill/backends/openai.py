"""OpenAI generation backend — Responses API via httpx."""

from __future__ import annotations

import base64
import logging

import httpx

from quill.backends.base import post_json
from quill.config import settings
from quill.errors import MalformedResponse
from quill.models.fragment import AssembledPrompt, PromptFragment

logger = logging.getLogger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1/responses"
DEFAULT_MODEL = "gpt-4o"


class OpenAIBackend:
    """Generation backend using OpenAI's Responses API."""

    name: str = "OpenAI"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.openai_api_key
        self.model = model
        self.transport = transport

    async def generate(self, prompt: AssembledPrompt) -> str:
        data = await post_json(
            OPENAI_API_URL,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            payload={
                "model": self.model,
                "input": [
                    {"role": "system", "content": prompt.system_instructions},
                    {"role": "user", "content": self._build_content(prompt.blocks)},
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
                encoded = base64.b64encode(block.data).decode("ascii")
                content.append({
                    "type": "input_file",
                    "filename": block.filename,
                    "file_data": f"data:{block.media_type};base64,{encoded}",
                })
            else:
                content.append({"type": "input_text", "text": block.text})
        return content

    def _parse_response(self, data: dict) -> str:
        """Join every output_text part of every message item."""
        # The SDK's ``output_text`` convenience is not part of the raw body.
        if isinstance(data.get("output_text"), str):
            return data["output_text"]
        try:
            parts = [
                part["text"]
                for item in data["output"]
                if item.get("type") == "message"
                for part in item.get("content", [])
                if part.get("type") == "output_text"
            ]
        except (KeyError, TypeError) as exc:
            raise MalformedResponse(f"OpenAI response missing output: {exc}") from exc
        if not parts:
            raise MalformedResponse("OpenAI response contained no text")
        return "".join(parts)
