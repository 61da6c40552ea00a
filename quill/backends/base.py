"""Base protocol for all generation backends."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

import httpx

from quill.config import settings
from quill.errors import BoundaryRejected, BoundaryUnreachable, MalformedResponse
from quill.models.fragment import AssembledPrompt

logger = logging.getLogger(__name__)


@runtime_checkable
class GenerationBackend(Protocol):
    """Interface that all LLM backends must implement."""

    name: str

    async def generate(self, prompt: AssembledPrompt) -> str:
        """Send one assembled prompt and return the completion text."""
        ...


async def post_json(
    url: str,
    *,
    headers: dict[str, str],
    payload: dict,
    provider: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """POST a JSON payload once and map failures onto boundary errors."""
    try:
        async with httpx.AsyncClient(
            timeout=settings.request_timeout, transport=transport
        ) as client:
            response = await client.post(url, headers=headers, json=payload)
    except httpx.TransportError as exc:
        logger.error("%s unreachable: %s", provider, exc)
        raise BoundaryUnreachable(f"{provider} is unreachable: {exc}") from exc

    if response.is_error:
        message = _provider_message(response)
        logger.error("%s rejected request (%d): %s", provider, response.status_code, message)
        raise BoundaryRejected(
            f"{provider} error {response.status_code}: {message}",
            status=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise MalformedResponse(f"{provider} returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise MalformedResponse(f"{provider} returned an unexpected body")
    return data


def _provider_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a provider error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or response.reason_phrase
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return response.text[:500]
