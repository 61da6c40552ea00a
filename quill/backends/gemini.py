"""Gemini generation backend — Google generateContent API."""

from __future__ import annotations

import base64
import logging

import httpx

from quill.backends.base import post_json
from quill.config import settings
from quill.errors import MalformedResponse
from quill.models.fragment import AssembledPrompt, PromptFragment

logger = logging.getLogger(__name__)

GENERATE_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_MODEL = "gemini-2.0-flash"


class GeminiBackend:
    """Generation backend using Google's Gemini models."""

    name: str = "Gemini"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_api_key
        self.model = model
        self.transport = transport

    async def generate(self, prompt: AssembledPrompt) -> str:
        data = await post_json(
            GENERATE_URL.format(model=self.model),
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": self.api_key,
            },
            payload={
                "systemInstruction": {"parts": [{"text": prompt.system_instructions}]},
                "contents": [
                    {"role": "user", "parts": self._build_parts(prompt.blocks)}
                ],
            },
            provider=self.name,
            transport=self.transport,
        )
        return self._extract_output(data)

    def _build_parts(self, blocks: list[PromptFragment]) -> list[dict]:
        parts: list[dict] = []
        for block in blocks:
            if block.is_document:
                parts.append({
                    "inline_data": {
                        "mime_type": block.media_type,
                        "data": base64.b64encode(block.data).decode("ascii"),
                    }
                })
            else:
                parts.append({"text": block.text})
        return parts

    def _extract_output(self, data: dict) -> str:
        """Extract the text of the first candidate."""
        candidates = data.get("candidates") or []
        if not candidates:
            # Blocked prompts come back 200 with only promptFeedback
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            detail = f" (blocked: {reason})" if reason else ""
            raise MalformedResponse(f"Gemini returned no candidates{detail}")
        try:
            parts = candidates[0]["content"]["parts"]
            text = "".join(p.get("text", "") for p in parts)
        except (KeyError, TypeError, AttributeError) as exc:
            raise MalformedResponse(f"Gemini response missing content: {exc}") from exc
        if not text:
            raise MalformedResponse("Gemini response contained no text")
        return text
