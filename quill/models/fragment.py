"""Prompt fragments and the assembled prompt."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FragmentKind(Enum):
    RAW_TEXT = "rawText"
    EMBEDDED_DOCUMENT = "embeddedDocument"


@dataclass(frozen=True)
class PromptFragment:
    """A normalized unit of prompt content."""

    kind: FragmentKind
    text: str = ""
    data: bytes = b""
    filename: str = ""
    media_type: str = ""

    @classmethod
    def raw_text(cls, text: str) -> PromptFragment:
        return cls(kind=FragmentKind.RAW_TEXT, text=text)

    @classmethod
    def document(
        cls, data: bytes, filename: str, media_type: str = "application/pdf"
    ) -> PromptFragment:
        return cls(
            kind=FragmentKind.EMBEDDED_DOCUMENT,
            data=data,
            filename=filename,
            media_type=media_type,
        )

    @property
    def is_document(self) -> bool:
        return self.kind is FragmentKind.EMBEDDED_DOCUMENT

    def render(self) -> str:
        """Text form of the fragment, used for logging and task text."""
        if self.is_document:
            return f"[Attached document: {self.filename}]"
        return self.text


@dataclass
class AssembledPrompt:
    """The two prompt halves handed to a backend.

    ``blocks`` is the ordered user content: free-text context, one fragment
    per uploaded document, then the task directive.
    """

    system_instructions: str
    blocks: list[PromptFragment] = field(default_factory=list)

    @property
    def task_instructions(self) -> str:
        return "\n\n".join(block.render() for block in self.blocks)

    @property
    def attachments(self) -> list[PromptFragment]:
        return [b for b in self.blocks if b.is_document]
