"""Generation request data model."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from quill.errors import UnknownRequestType
from quill.models.resource import UploadedResource

DEFAULT_PAGES = 2
WORDS_PER_PAGE = 275

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class RequestType(Enum):
    DISCUSSION = "discussion"
    PAPER = "paper"
    RESPONSE = "response"
    BATCH_ITEM = "batch-item"

    @classmethod
    def parse(cls, value: object) -> RequestType:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnknownRequestType(value) from None


def parse_page_count(raw: str | int | None) -> int:
    """Read a page count the way a browser form sends it.

    Anything missing, non-numeric, zero or negative becomes the default.
    """
    if isinstance(raw, int):
        pages = raw
    else:
        match = _LEADING_INT.match(raw or "")
        pages = int(match.group(1)) if match else 0
    return pages if pages > 0 else DEFAULT_PAGES


def word_target(pages: int) -> int:
    return pages * WORDS_PER_PAGE


@dataclass
class GenerationRequest:
    """Everything the pipeline needs for one generation call."""

    type: RequestType
    context: str = ""
    additional_instructions: str = ""
    page_count: str = ""
    discussion_post: str = ""
    resources: list[UploadedResource] = field(default_factory=list)
    model: str = ""
