"""Batch parsing and sequential batch orchestration."""

from __future__ import annotations

import inspect
import logging
import re
from dataclasses import replace
from typing import AsyncIterator, Callable

from quill.models.fragment import PromptFragment
from quill.models.request import GenerationRequest, RequestType
from quill.models.result import BatchEvent, BatchWorkItem, GenerationResult
from quill.orchestrator.pipeline import Pipeline

logger = logging.getLogger(__name__)

DELIMITER_RE = re.compile(r"^[ \t]*-{3,}[ \t]*$", re.MULTILINE)
NAME_LINE_MAX = 50

# Called with the 1-based count of finished items; may be async.
ProgressObserver = Callable[[int], object]


def _is_name_line(line: str) -> bool:
    # Heuristic kept as-is: short, and no sentence punctuation.
    return bool(line) and len(line) < NAME_LINE_MAX and "." not in line and "?" not in line


def parse_batch(raw_text: str) -> list[BatchWorkItem]:
    """Split pasted posts on ``---`` lines into named work items."""
    # Form posts arrive with CRLF line endings.
    text = (raw_text or "").replace("\r\n", "\n").replace("\r", "\n")
    segments = [s.strip() for s in DELIMITER_RE.split(text)]
    segments = [s for s in segments if s]

    items: list[BatchWorkItem] = []
    for index, segment in enumerate(segments, 1):
        fallback = f"Response {index}"
        lines = segment.split("\n")
        first = lines[0].strip()
        if _is_name_line(first):
            name = first.rstrip(",:").strip() or fallback
            body = "\n".join(lines[1:]).strip()
            items.append(BatchWorkItem(display_name=name, post_body=body))
        else:
            items.append(BatchWorkItem(display_name=fallback, post_body=segment))
    return items


class BatchOrchestrator:
    """Runs a reply for each batch item, one after another.

    A failing item records its failure and the run moves on; the result
    list always has one entry per item, in input order.
    """

    def __init__(self, pipeline: Pipeline | None = None) -> None:
        self.pipeline = pipeline or Pipeline()

    async def events(
        self, items: list[BatchWorkItem], shared: GenerationRequest
    ) -> AsyncIterator[BatchEvent]:
        """Yield one event per finished item, strictly in order."""
        total = len(items)
        fragments: list[PromptFragment] | None = None
        normalize_error: Exception | None = None
        try:
            fragments = self.pipeline.normalize(shared.resources)
        except Exception as exc:
            logger.error("Batch uploads could not be normalized: %s", exc)
            normalize_error = exc

        for index, item in enumerate(items):
            result = GenerationResult(display_name=item.display_name, input_echo=item.post_body)
            try:
                if normalize_error is not None:
                    raise normalize_error
                request = replace(
                    shared, type=RequestType.BATCH_ITEM, discussion_post=item.post_body
                )
                result.output_text = await self.pipeline.generate(request, fragments)
            except Exception as exc:
                logger.error("Batch item %d (%s) failed: %s", index + 1, item.display_name, exc)
                result.failure_reason = str(exc) or type(exc).__name__

            yield BatchEvent(index=index, processed=index + 1, total=total, result=result)

    async def run_all(
        self,
        items: list[BatchWorkItem],
        shared: GenerationRequest,
        on_progress: ProgressObserver | None = None,
    ) -> list[GenerationResult]:
        """Drain :meth:`events` into the ordered result list."""
        results: list[GenerationResult] = []
        async for event in self.events(items, shared):
            results.append(event.result)
            if on_progress is not None:
                outcome = on_progress(event.processed)
                if inspect.isawaitable(outcome):
                    await outcome
        logger.info(
            "Batch finished: %d items, %d failed",
            len(results), sum(1 for r in results if not r.ok),
        )
        return results
