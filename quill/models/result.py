"""Batch work item and generation result data models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BatchWorkItem:
    """One post extracted from a pasted batch."""

    display_name: str
    post_body: str


@dataclass
class GenerationResult:
    """Outcome of one generation: output text or the reason it failed."""

    display_name: str | None = None
    input_echo: str | None = None
    output_text: str | None = None
    failure_reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.failure_reason is None

    def to_dict(self) -> dict:
        return {
            "name": self.display_name,
            "post": self.input_echo,
            "response": self.output_text,
            "error": self.failure_reason,
        }


@dataclass(frozen=True)
class BatchEvent:
    """Emitted once per finished batch item, in input order."""

    index: int
    processed: int
    total: int
    result: GenerationResult
